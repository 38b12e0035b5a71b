"""Filter, project and total already-fetched collections."""

import datetime

from .errors import DateParseError
from .joiner import field

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# A predicate hitting one of these on a malformed record simply doesn't match.
_MALFORMED = (KeyError, TypeError, AttributeError, IndexError)


def _extractor(extractor):
    if callable(extractor):
        return extractor
    return lambda resource: field(resource, extractor)


def _matches(predicate, resource) -> bool:
    try:
        return bool(predicate(resource))
    except _MALFORMED:
        return False


class Aggregation:
    """
    The records of a collection that pass ``predicate``, run through
    ``projector``. Iterating twice walks the collection twice.
    """

    def __init__(self, collection, predicate, projector):
        self.collection = collection
        self.predicate = predicate
        self.projector = projector

    def __iter__(self):
        for resource in self.collection:
            if _matches(self.predicate, resource):
                yield self.projector(resource)


def aggregate(collection, predicate=None, projector=None) -> Aggregation:
    return Aggregation(
        collection,
        predicate or (lambda resource: True),
        projector or (lambda resource: resource),
    )


def sum_field(collection, extractor) -> int:
    """Total ``extractor`` over ``collection``; missing or null values count as zero."""
    extract = _extractor(extractor)
    total = 0
    for resource in collection:
        try:
            value = extract(resource)
        except _MALFORMED:
            value = None
        total += value or 0
    return total


def parse_timestamp(value, field_name: str) -> datetime.datetime:
    """Parse a ``2024-01-31T23:59:59Z`` timestamp into an aware UTC datetime."""
    try:
        parsed = datetime.datetime.strptime(value, TIMESTAMP_FORMAT)
    except (TypeError, ValueError) as exc:
        raise DateParseError(field_name, value) from exc
    return parsed.replace(tzinfo=datetime.timezone.utc)


def format_timestamp(instant: datetime.datetime) -> str:
    return instant.astimezone(datetime.timezone.utc).strftime(TIMESTAMP_FORMAT)


def updated_before(cutoff: datetime.datetime, field_name: str = "updated_at"):
    """
    Predicate for records whose ``field_name`` is strictly older than ``cutoff``.

    A record without the field does not match. A record with a malformed
    value raises ``DateParseError``.
    """

    def predicate(resource):
        raw = resource.get(field_name)
        if raw is None:
            return False
        return parse_timestamp(raw, field_name) < cutoff

    return predicate


def state_is(state: str):
    return lambda resource: resource["state"] == state


def all_of(*predicates):
    return lambda resource: all(predicate(resource) for predicate in predicates)
