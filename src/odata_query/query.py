"""Fluent query builder scoped to one entity set.

A :class:`Query` collects filters, ordering, expansions, projections, paging,
a search term and the inline-count flag. Every builder method mutates the
query and returns it, so calls can be chained::

    query = products.query()
    query.where(query["Price"].gt(10)).order_by("Name desc").limit(5)
    for product in query.execute():
        ...

Serialization always goes through an immutable :class:`CompiledQuery`
snapshot, so reusing a builder after :meth:`Query.execute` never changes a
result that is already being iterated.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from odata_query.config import PaginationConfig
from odata_query.criteria import Criteria, RawProperty, resolve_operand
from odata_query.exceptions import CriteriaError, QueryError
from odata_query.interfaces import EntityParser, EntitySetProtocol
from odata_query.log_events import LogEvents
from odata_query.logger import UnifiedLogger
from odata_query.result import Result

__all__ = ["CompiledQuery", "Query"]

_SEARCH_SUFFIX = "includePrerelease=false"


@dataclass(frozen=True, slots=True)
class CompiledQuery:
    """Immutable snapshot of a query's criteria set."""

    entity_set_name: str
    filters: tuple[Criteria, ...] = ()
    search_term: str | None = None
    orderby: tuple[str, ...] = ()
    expand: tuple[str, ...] = ()
    select: tuple[str, ...] = ()
    inline_count: bool = False
    skip: int = 0
    top: int = 0

    def fragments(self) -> list[str]:
        """Return the non-empty criteria fragments in serialization order."""

        candidates = [
            self._filter_fragment(),
            self._search_fragment(),
            self._list_fragment("orderby", self.orderby),
            self._list_fragment("expand", self.expand),
            self._list_fragment("select", self.select),
            "$inlinecount=allpages" if self.inline_count else None,
            self._paging_fragment("skip", self.skip),
            self._paging_fragment("top", self.top),
        ]
        return [fragment for fragment in candidates if fragment]

    def criteria_string(self) -> str | None:
        """``&``-joined fragments, or ``None`` when nothing is set."""

        fragments = self.fragments()
        if not fragments:
            return None
        return "&".join(fragments)

    def url(self) -> str:
        criteria = self.criteria_string()
        if criteria is None:
            return self.entity_set_name
        return f"{self.entity_set_name}?{criteria}"

    def count_url(self) -> str:
        base = f"{self.entity_set_name}/$count"
        criteria = self.criteria_string()
        if criteria is None:
            return base
        return f"{base}?{criteria}"

    def _filter_fragment(self) -> str | None:
        if not self.filters:
            return None
        return "$filter=" + " and ".join(criteria.render() for criteria in self.filters)

    def _search_fragment(self) -> str | None:
        if self.search_term is None:
            return None
        return f"searchTerm='{self.search_term}'&{_SEARCH_SUFFIX}"

    @staticmethod
    def _list_fragment(name: str, tokens: tuple[str, ...]) -> str | None:
        if not tokens:
            return None
        return f"${name}={','.join(tokens)}"

    @staticmethod
    def _paging_fragment(name: str, value: int) -> str | None:
        if value == 0:
            return None
        return f"${name}={value}"


def _coerce_paging(name: str, value: Any) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise QueryError(f"{name} expects an integer, got {value!r}") from exc
    if number < 0:
        raise QueryError(f"{name} must be non-negative, got {number}")
    return number


class Query:
    """Criteria set for requesting entities from an entity set.

    Normally obtained from :meth:`odata_query.entity.EntitySet.query` rather
    than instantiated directly.
    """

    def __init__(
        self,
        entity_set: EntitySetProtocol,
        *,
        pagination: PaginationConfig | None = None,
        entity_parser: EntityParser | None = None,
    ) -> None:
        self._entity_set = entity_set
        self._pagination = pagination
        self._entity_parser = entity_parser
        self._filters: list[Criteria] = []
        self._select: list[str] = []
        self._expand: list[str] = []
        self._orderby: list[str] = []
        self._skip = 0
        self._top = 0
        self._inline_count = False
        self._search_term: str | None = None
        self._log = UnifiedLogger.get(__name__).bind(
            component="query",
            service=getattr(entity_set.service, "name", entity_set.service.service_url),
            entity_set=entity_set.name,
        )

    @property
    def entity_set(self) -> EntitySetProtocol:
        return self._entity_set

    def __getitem__(self, property_name: str) -> Criteria:
        """Return an empty :class:`Criteria` for ``property_name``.

        Names unknown to the entity type are kept as raw operands.
        """

        operand = resolve_operand(self._entity_set.new_entity(), str(property_name))
        if isinstance(operand, RawProperty):
            self._log.debug(LogEvents.QUERY_PROPERTY_UNRESOLVED, property=operand.name)
        return Criteria(property=operand)

    def where(self, criteria: Criteria) -> Query:
        """Add a filter; repeated calls are combined with ``and``."""

        if not isinstance(criteria, Criteria):
            raise CriteriaError(f"where() expects a Criteria, got {type(criteria).__name__}")
        if not criteria.is_complete:
            raise CriteriaError(f"Criteria for {criteria.property.name!r} has no comparison operator")
        self._filters.append(criteria)
        return self

    def order_by(self, *properties: Any) -> Query:
        """Order by the given properties; append ``desc`` for descending."""

        self._orderby.extend(str(token) for token in properties)
        return self

    def expand(self, *associations: Any) -> Query:
        self._expand.extend(str(token) for token in associations)
        return self

    def select(self, *properties: Any) -> Query:
        self._select.extend(str(token) for token in properties)
        return self

    def skip(self, value: Any) -> Query:
        self._skip = _coerce_paging("skip", value)
        return self

    def limit(self, value: Any) -> Query:
        self._top = _coerce_paging("limit", value)
        return self

    def search_term(self, value: Any) -> Query:
        self._search_term = None if value is None else str(value)
        return self

    def include_count(self) -> Query:
        """Ask for ``$inlinecount=allpages`` (not every server supports it)."""

        self._inline_count = True
        return self

    def compile(self) -> CompiledQuery:
        """Freeze the current criteria set."""

        search = self._search_term
        if search is not None and not search.strip():
            search = None
        return CompiledQuery(
            entity_set_name=self._entity_set.name,
            filters=tuple(self._filters),
            search_term=search,
            orderby=tuple(self._orderby),
            expand=tuple(self._expand),
            select=tuple(self._select),
            inline_count=self._inline_count,
            skip=self._skip,
            top=self._top,
        )

    def to_s(self) -> str:
        return self.compile().url()

    def __str__(self) -> str:
        return self.to_s()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.to_s()!r}>"

    def execute(self) -> Result:
        """Fetch the first page and wrap it in a :class:`Result`."""

        compiled = self.compile()
        url = compiled.url()
        self._log.info(LogEvents.QUERY_EXECUTE_STARTED, url=url)
        with UnifiedLogger.scoped(entity_set=compiled.entity_set_name):
            response = self._entity_set.service.execute(url)
        return Result(
            self,
            response,
            compiled=compiled,
            pagination=self._pagination,
            entity_parser=self._entity_parser,
        )

    def count(self) -> int:
        """Return the server-side count of entities matching the filters."""

        url = self.compile().count_url()
        self._log.info(LogEvents.QUERY_COUNT_REQUESTED, url=url)
        with UnifiedLogger.scoped(entity_set=self._entity_set.name):
            body = self._entity_set.service.execute(url).text
        try:
            return int(body.strip())
        except ValueError as exc:
            raise QueryError(f"Unexpected $count response body: {body[:100]!r}") from exc

    def is_empty(self) -> bool:
        return self.count() == 0
