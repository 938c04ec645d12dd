"""Filter criteria: one ``<property> <operator> <value>`` comparison."""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from odata_query.exceptions import CriteriaError
from odata_query.interfaces import EntityProtocol, PropertyProtocol

__all__ = [
    "ComparisonOperator",
    "FilterOperand",
    "ResolvedProperty",
    "RawProperty",
    "Criteria",
    "resolve_operand",
    "render_value",
]


class ComparisonOperator(str, Enum):
    """Comparison operators accepted in ``$filter`` expressions."""

    EQ = "eq"
    NE = "ne"
    GT = "gt"
    GE = "ge"
    LT = "lt"
    LE = "le"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def coerce(cls, value: ComparisonOperator | str) -> ComparisonOperator:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            allowed = ", ".join(member.value for member in cls)
            raise CriteriaError(f"Unknown comparison operator {value!r}; expected one of: {allowed}") from exc


@runtime_checkable
class FilterOperand(Protocol):
    """Left-hand side of a comparison that knows how to render itself."""

    @property
    def name(self) -> str: ...

    def render(self) -> str: ...


@dataclass(frozen=True, slots=True)
class ResolvedProperty:
    """Operand backed by a property declared on the entity type."""

    property: PropertyProtocol

    @property
    def name(self) -> str:
        return str(self.property.name)

    def render(self) -> str:
        return self.name


@dataclass(frozen=True, slots=True)
class RawProperty:
    """Operand for a name the entity type does not declare.

    The name is passed through verbatim; the server decides whether it is
    valid.
    """

    name: str

    def render(self) -> str:
        return self.name


def resolve_operand(entity: EntityProtocol | None, name: str) -> FilterOperand:
    """Return a :class:`ResolvedProperty` when ``entity`` knows ``name``."""

    if entity is not None:
        prop = entity.get_property(name)
        if prop is not None:
            return ResolvedProperty(prop)
    return RawProperty(name)


def render_value(value: Any) -> str:
    """Render a literal the way the filter syntax expects it.

    >>> render_value("O'Brien")
    "'O''Brien'"
    >>> render_value(None)
    'null'
    """

    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        escaped = value.replace("'", "''")
        return f"'{escaped}'"
    if isinstance(value, float):
        if not math.isfinite(value):
            raise CriteriaError(f"Cannot render non-finite number {value!r}")
        # shortest round-tripping digits, without exponent notation
        return format(Decimal(repr(value)), "f")
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise CriteriaError(f"Cannot render non-finite number {value!r}")
        return format(value, "f")
    return str(value)


@dataclass(frozen=True, slots=True)
class Criteria:
    """A single comparison collected by :meth:`Query.where`.

    Instances are immutable; :meth:`eq` and friends return a populated copy.
    No check is made that the operator suits the property type.
    """

    property: FilterOperand
    operator: ComparisonOperator | None = None
    value: Any = None

    def __post_init__(self) -> None:
        if isinstance(self.property, str):
            object.__setattr__(self, "property", RawProperty(self.property))
        if self.operator is not None:
            object.__setattr__(self, "operator", ComparisonOperator.coerce(self.operator))

    @property
    def is_complete(self) -> bool:
        return self.operator is not None

    def compare(self, operator: ComparisonOperator | str, value: Any) -> Criteria:
        return replace(self, operator=ComparisonOperator.coerce(operator), value=value)

    def eq(self, value: Any) -> Criteria:
        return self.compare(ComparisonOperator.EQ, value)

    def ne(self, value: Any) -> Criteria:
        return self.compare(ComparisonOperator.NE, value)

    def gt(self, value: Any) -> Criteria:
        return self.compare(ComparisonOperator.GT, value)

    def ge(self, value: Any) -> Criteria:
        return self.compare(ComparisonOperator.GE, value)

    def lt(self, value: Any) -> Criteria:
        return self.compare(ComparisonOperator.LT, value)

    def le(self, value: Any) -> Criteria:
        return self.compare(ComparisonOperator.LE, value)

    def render(self) -> str:
        if self.operator is None:
            raise CriteriaError(f"Criteria for {self.property.name!r} has no comparison operator")
        return f"{self.property.render()} {self.operator.value} {render_value(self.value)}"

    def __str__(self) -> str:
        return self.render()
