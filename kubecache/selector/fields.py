"""Structural field access by external (serialized) field name.

Kubernetes model classes generated by kubernetes-asyncio carry an
``attribute_map`` from Python attribute name to API (camelCase) name.  The
inverse of that map is built once per class and cached, so a dot-path written
in the API's public naming convention (``metadata.creationTimestamp``,
``spec.podSelector``) resolves against any kind without kind-specific code.
Plain mappings, e.g. raw watch objects or ``labels``, are looked up by key.
"""

from __future__ import annotations

import functools
from collections.abc import Iterable, Mapping
from datetime import date, datetime, timedelta
from typing import Any

MISSING: Any = object()


@functools.cache
def field_table(cls: type) -> dict[str, str]:
    """Return the ``external name -> attribute name`` table for *cls*.

    Classes without an ``attribute_map`` have no addressable fields.
    """
    attribute_map = getattr(cls, "attribute_map", None)
    if not isinstance(attribute_map, Mapping):
        return {}
    return {external: attr for attr, external in attribute_map.items()}


def get_field(obj: Any, name: str) -> Any:
    """Return the child of *obj* whose external name is *name*, or ``MISSING``."""
    if obj is None:
        return MISSING
    if isinstance(obj, Mapping):
        return obj.get(name, MISSING)
    attr = field_table(type(obj)).get(name)
    if attr is None:
        return MISSING
    return getattr(obj, attr, MISSING)


def resolve_path(obj: Any, segments: Iterable[str]) -> Any:
    """Walk *obj* segment by segment; ``MISSING`` as soon as a segment is absent."""
    current = obj
    for segment in segments:
        current = get_field(current, segment)
        if current is MISSING:
            return MISSING
    return current


def format_datetime(value: datetime) -> str:
    """RFC 3339, with a ``Z`` suffix for UTC as the API server renders it."""
    if value.tzinfo is not None and value.utcoffset() == timedelta(0):
        return value.replace(tzinfo=None).isoformat() + "Z"
    return value.isoformat()


def render_value(value: Any) -> str | None:
    """Render a leaf value for string comparison.

    Returns None for absent values so they never match a constraint.
    """
    if value is None or value is MISSING:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return format_datetime(value)
    if isinstance(value, date):
        return value.isoformat()
    return str(value)
