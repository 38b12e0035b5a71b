"""Exceptions raised by the fetch, join and report layers."""


class ReportError(Exception):
    """Base class for every error a report can fail with."""


class ConnectivityError(ReportError):
    """A prerequisite (CLI binary, login, API reachability) is missing."""


class ConfigError(ReportError):
    pass


class FetchError(ReportError):
    """A page request failed. Nothing fetched so far is returned."""

    def __init__(self, endpoint: str, cause):
        self.endpoint = endpoint
        self.cause = cause
        super().__init__(f"unable to fetch {endpoint}: {cause}")


class DateParseError(ReportError):
    def __init__(self, field_name: str, value):
        self.field_name = field_name
        self.value = value
        super().__init__(
            f"{field_name} value {value!r} is not a timestamp like 2024-01-31T23:59:59Z"
        )


class DuplicateKeyError(ReportError):
    def __init__(self, key):
        self.key = key
        super().__init__(f"duplicate key {key!r} while building lookup")
