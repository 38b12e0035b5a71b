"""
Index fetched collections by identifier and follow references between them.

A space points at its organization with
``relationships.organization.data.guid``; an app points at its space the same
way. Joining an app to its organization is two ``resolve`` calls.
"""

import logging
from types import MappingProxyType

from .errors import DuplicateKeyError

logger = logging.getLogger(__name__)


class Unresolved:
    """Marker for a reference that could not be resolved."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self):
        return False

    def __repr__(self):
        return "UNRESOLVED"

    __str__ = __repr__


UNRESOLVED = Unresolved()


def resource_id(resource: dict):
    """CF v3 resources carry a ``guid``; UAA records carry an ``id``."""
    if "guid" in resource:
        return resource["guid"]
    return resource.get("id")


def field(resource, path: str, default=None):
    """
    Read a dotted path such as ``relationships.space.data.guid``.

    Missing keys and ``None`` along the way give ``default``. Reading from
    ``UNRESOLVED`` gives ``UNRESOLVED``.
    """
    if resource is UNRESOLVED:
        return UNRESOLVED
    value = resource
    for part in path.split("."):
        if not isinstance(value, dict):
            return default
        value = value.get(part)
        if value is None:
            return default
    return value


def _key_function(key):
    if callable(key):
        return key
    return lambda resource: field(resource, key)


def build_lookup(collection, key=resource_id, strict: bool = False):
    """
    Map ``key(resource)`` to resource for every resource in ``collection``.

    ``key`` is a callable or a dotted field path. Duplicate keys keep the last
    resource seen unless ``strict`` is set, in which case they raise
    ``DuplicateKeyError``.
    """
    key_fn = _key_function(key)
    lookup = {}
    for resource in collection:
        resource_key = key_fn(resource)
        if resource_key in lookup:
            if strict:
                raise DuplicateKeyError(resource_key)
            logger.warning("duplicate key %s, keeping the last one seen", resource_key)
        lookup[resource_key] = resource
    return MappingProxyType(lookup)


def resolve(lookup, key):
    if key is None or key is UNRESOLVED:
        return UNRESOLVED
    return lookup.get(key, UNRESOLVED)
