"""Query construction and paged result iteration for feed-based data services."""

from odata_query.config import ClientConfig, HTTPClientConfig, PaginationConfig, load_config
from odata_query.criteria import ComparisonOperator, Criteria, RawProperty, ResolvedProperty
from odata_query.entity import Entity, EntitySet, Property
from odata_query.exceptions import (
    CriteriaError,
    FeedParseError,
    ODataQueryError,
    PaginationLoopError,
    QueryError,
    ServiceLookupError,
)
from odata_query.logger import LogConfig, LogFormat, UnifiedLogger, configure_logging
from odata_query.query import CompiledQuery, Query
from odata_query.result import Result
from odata_query.service import Service, ServiceRegistry, service_registry

__version__ = "0.1.0"

__all__ = [
    "ClientConfig",
    "CompiledQuery",
    "ComparisonOperator",
    "Criteria",
    "CriteriaError",
    "Entity",
    "EntitySet",
    "FeedParseError",
    "HTTPClientConfig",
    "LogConfig",
    "LogFormat",
    "ODataQueryError",
    "PaginationConfig",
    "PaginationLoopError",
    "Property",
    "Query",
    "QueryError",
    "RawProperty",
    "ResolvedProperty",
    "Result",
    "Service",
    "ServiceLookupError",
    "ServiceRegistry",
    "UnifiedLogger",
    "configure_logging",
    "load_config",
    "service_registry",
]
