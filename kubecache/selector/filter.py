"""Selector filter engine.

Evaluates label, field and namespace constraints against cached objects of
any kind by walking their structure (see ``kubecache.selector.fields``).
All constraints of a selector, and all selectors of a query, are ANDed.

Constraints are parsed lazily while an object is evaluated, so a malformed
constraint is only reported once evaluation reaches it; an empty object list
never raises.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

import structlog

from kubecache.models.selectors import Selector, SelectorKind
from kubecache.selector.fields import MISSING, render_value, resolve_path

_log = structlog.get_logger(component="selector.filter")

LABELS_PATH = ("metadata", "labels")
NAMESPACE_PATH = ("metadata", "namespace")


class SelectorError(Exception):
    """Base class for query errors raised while evaluating selectors."""

    code = "INVALID_SELECTOR"


class MalformedConstraintError(SelectorError):
    """A ``key=value`` constraint does not contain exactly one ``=``."""

    code = "MALFORMED_CONSTRAINT"

    def __init__(self, constraint: str) -> None:
        super().__init__(f"Key and value are not matched correctly: {constraint}")
        self.constraint = constraint


class UnknownSelectorKindError(SelectorError):
    """The selector kind is not one of ``SelectorKind``."""

    code = "UNKNOWN_SELECTOR_KIND"

    def __init__(self, kind: str) -> None:
        super().__init__(f"{kind} is not a valid selector kind")
        self.kind = kind


def split_pair(constraint: str) -> tuple[str, str]:
    parts = constraint.split("=")
    if len(parts) != 2:
        raise MalformedConstraintError(constraint)
    return parts[0], parts[1]


def field_matches(obj: Any, path: Sequence[str], value: str) -> bool:
    """True iff the leaf at *path* renders to exactly *value*."""
    leaf = resolve_path(obj, path)
    if leaf is MISSING:
        _log.debug("field_not_found", path=".".join(path))
        return False
    return render_value(leaf) == value


def label_matches(obj: Any, key: str, value: str) -> bool:
    """True iff the object's labels contain *key* with exactly *value*."""
    labels = resolve_path(obj, LABELS_PATH)
    if not isinstance(labels, Mapping):
        _log.debug("labels_not_a_mapping", type=type(labels).__name__)
        return False
    if key not in labels:
        return False
    return labels[key] == value


def constraint_matches(obj: Any, kind: str, constraint: str) -> bool:
    if kind == SelectorKind.LABEL:
        key, value = split_pair(constraint)
        return label_matches(obj, key, value)
    if kind == SelectorKind.FIELD:
        path, value = split_pair(constraint)
        return field_matches(obj, path.split("."), value)
    if kind == SelectorKind.NAMESPACE:
        return field_matches(obj, NAMESPACE_PATH, constraint)
    raise UnknownSelectorKindError(kind)


def matches_selectors(obj: Any, selectors: Iterable[Selector]) -> bool:
    """Return True if *obj* satisfies every constraint of every selector.

    Raises:
        MalformedConstraintError: a label/field constraint is not ``key=value``.
        UnknownSelectorKindError: a selector kind is not recognised.
    """
    for selector in selectors:
        for constraint in selector.constraints():
            if not constraint_matches(obj, selector.kind, constraint):
                return False
    return True


def filter_objects(objects: Iterable[Any], selectors: Sequence[Selector]) -> list[Any]:
    """Return the objects matching all *selectors*.

    The first error aborts the whole evaluation; no partial result is returned.
    """
    matched: list[Any] = []
    for index, obj in enumerate(objects):
        _log.debug("evaluating_object", index=index)
        if matches_selectors(obj, selectors):
            matched.append(obj)
    return matched
