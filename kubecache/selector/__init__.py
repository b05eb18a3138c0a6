"""Structural selector queries over cached resources.

Submodules:
    fields  -- External-name field tables, dot-path resolution, leaf rendering.
    filter  -- Label/field/namespace constraint evaluation (AND-only).
    parser  -- Query parameters to selector list.
"""

from kubecache.selector.filter import (
    MalformedConstraintError,
    SelectorError,
    UnknownSelectorKindError,
    filter_objects,
    matches_selectors,
)
from kubecache.selector.parser import parse_query_params

__all__ = [
    "MalformedConstraintError",
    "SelectorError",
    "UnknownSelectorKindError",
    "filter_objects",
    "matches_selectors",
    "parse_query_params",
]
