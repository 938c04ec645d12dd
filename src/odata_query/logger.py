"""Structured logging setup shared by the library and the CLI.

structlog events are routed through the standard :mod:`logging` machinery so
that applications embedding the library keep control over handlers and
levels. Components obtain loggers from :class:`UnifiedLogger` and bind a
``component`` field; request-scoped values such as ``service`` or
``entity_set`` are bound either on the logger or through
:meth:`UnifiedLogger.scoped`.
"""
from __future__ import annotations

import logging
from collections.abc import Iterator, MutableMapping, Sequence
from contextlib import AbstractContextManager, contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, Final, cast

import structlog
from structlog.contextvars import (
    bind_contextvars,
    clear_contextvars,
    get_contextvars,
    unbind_contextvars,
)
from structlog.exceptions import DropEvent
from structlog.stdlib import BoundLogger

__all__ = [
    "LogFormat",
    "LogConfig",
    "DEFAULT_LOG_LEVEL",
    "MANDATORY_FIELDS",
    "configure_logging",
    "get_logger",
    "UnifiedLogger",
]


class LogFormat(str, Enum):
    """Supported output formats for the renderer."""

    JSON = "json"
    KEY_VALUE = "key_value"


DEFAULT_LOG_LEVEL = logging.WARNING

MANDATORY_FIELDS: Sequence[str] = ("component", "service")
"""Context fields every event is expected to carry."""

_ROOT_LOGGER_NAME: Final[str] = "odata_query"
_REDACTED: Final[str] = "***REDACTED***"


@dataclass(frozen=True, slots=True)
class LogConfig:
    """User configurable logging parameters."""

    level: int | str = DEFAULT_LOG_LEVEL
    format: LogFormat = LogFormat.JSON
    redact_fields: Sequence[str] = ("authorization", "password", "api_key")


def _level_number(level: int | str) -> int:
    if isinstance(level, int):
        return level
    number = logging.getLevelName(level.upper())
    if not isinstance(number, int):
        raise ValueError(f"Unsupported log level: {level}")
    return number


class _Redactor:
    """Processor masking values of sensitive keys."""

    def __init__(self, fields: Sequence[str]) -> None:
        self._fields = frozenset(fields)

    def __call__(self, _: Any, __: str, event_dict: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
        for key in self._fields.intersection(event_dict):
            event_dict[key] = _REDACTED
        return event_dict


def _flag_missing_context(
    _: Any,
    __: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    missing = [key for key in MANDATORY_FIELDS if key not in event_dict]
    if missing:
        event_dict.setdefault("missing_context", missing)
    return event_dict


def _drop_below_level(
    logger: logging.Logger | None,
    method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    target = logger or logging.getLogger(_ROOT_LOGGER_NAME)
    if method_name == "exception":
        method_name = "error"
    level = logging.getLevelName(method_name.upper())
    if not isinstance(level, int):
        level = logging.INFO
    if target.isEnabledFor(level):
        return event_dict
    raise DropEvent


def _processors(config: LogConfig) -> list[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
        _flag_missing_context,
        structlog.processors.EventRenamer("message"),
        _Redactor(config.redact_fields),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(format: LogFormat) -> Any:
    if format is LogFormat.KEY_VALUE:
        return structlog.processors.KeyValueRenderer(
            key_order=("timestamp", "level", *MANDATORY_FIELDS, "entity_set", "message"),
            drop_missing=True,
        )
    return structlog.processors.JSONRenderer(sort_keys=True, ensure_ascii=False)


def configure_logging(config: LogConfig | None = None) -> None:
    """Install a stderr handler and route structlog through it."""

    cfg = config or LogConfig()
    processors = _processors(cfg)

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=[*processors, _drop_below_level],
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(cfg.format),
            ],
        )
    )
    logging.basicConfig(handlers=[handler], level=_level_number(cfg.level), force=True)

    structlog.configure(
        processors=[
            *processors,
            _drop_below_level,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = _ROOT_LOGGER_NAME) -> BoundLogger:
    return cast(BoundLogger, structlog.get_logger(name))


class UnifiedLogger:
    """Facade over logger lookup and context binding."""

    @staticmethod
    def configure(config: LogConfig | None = None) -> None:
        configure_logging(config)

    @staticmethod
    def get(name: str | None = None) -> BoundLogger:
        return get_logger(name or _ROOT_LOGGER_NAME)

    @staticmethod
    def bind(**context: Any) -> None:
        """Bind context included with every subsequent event."""

        bind_contextvars(**context)

    @staticmethod
    def reset() -> None:
        clear_contextvars()

    @staticmethod
    def scoped(**context: Any) -> AbstractContextManager[None]:
        """Temporarily override bound context, restoring earlier values on exit."""

        @contextmanager
        def _scope() -> Iterator[None]:
            current = get_contextvars()
            shadowed = {key: current[key] for key in context if key in current}
            bind_contextvars(**context)
            try:
                yield None
            finally:
                unbind_contextvars(*context)
                if shadowed:
                    bind_contextvars(**shadowed)

        return _scope()
