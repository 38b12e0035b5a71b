"""
Fetch paginated Cloud Foundry and UAA collections, join them, and report on
the results.
"""
from .aggregate import aggregate, parse_timestamp, sum_field, updated_before
from .errors import (
    ConfigError,
    ConnectivityError,
    DateParseError,
    DuplicateKeyError,
    FetchError,
    ReportError,
)
from .fetcher import Page, fetch_all
from .joiner import UNRESOLVED, build_lookup, field, resolve

__all__ = [
    "Page",
    "fetch_all",
    "build_lookup",
    "resolve",
    "field",
    "UNRESOLVED",
    "aggregate",
    "sum_field",
    "parse_timestamp",
    "updated_before",
    "ReportError",
    "ConnectivityError",
    "ConfigError",
    "FetchError",
    "DateParseError",
    "DuplicateKeyError",
]
