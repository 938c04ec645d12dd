"""Registry of structured logging event identifiers."""

from __future__ import annotations

from enum import Enum, auto

__all__ = ["LogEvents"]


class LogEvents(str, Enum):
    """Strongly typed registry of :class:`~odata_query.logger.UnifiedLogger` events.

    Member names are turned into dotted identifiers: ``HTTP_REQUEST_SENT``
    becomes ``"http.request.sent"``.
    """

    @staticmethod
    def _generate_next_value_(name: str, start: int, count: int, _last_values: list[str]) -> str:
        parts = name.lower().split("_")
        namespace = parts[0] if parts else "event"
        suffix = parts[-1] if len(parts) > 1 else "event"
        action_parts = parts[1:-1] if len(parts) > 2 else []
        if not action_parts:
            action_parts = ["event"]
        return ".".join((namespace, ".".join(action_parts), suffix))

    def __str__(self) -> str:
        return str(self.value)

    QUERY_EXECUTE_STARTED = auto()
    QUERY_COUNT_REQUESTED = auto()
    QUERY_PROPERTY_UNRESOLVED = auto()
    PAGINATION_PAGE_FETCHED = auto()
    PAGINATION_NEXT_RESOLVED = auto()
    PAGINATION_ITERATION_FINISHED = auto()
    PAGINATION_LOOP_DETECTED = auto()
    HTTP_REQUEST_SENT = auto()
    HTTP_REQUEST_COMPLETED = auto()
    HTTP_REQUEST_FAILED = auto()
    REGISTRY_SERVICE_REGISTERED = auto()
    CLI_RUN_ERROR = auto()
