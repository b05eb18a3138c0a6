"""Translate inbound query parameters into selectors."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

from kubecache.models.selectors import Selector


def parse_query_params(params: Mapping[str, Sequence[str]] | Iterable[tuple[str, str]]) -> list[Selector]:
    """Convert query parameters into a list of selectors.

    Each parameter name becomes the selector kind and each non-empty value,
    including repeated ones, becomes its own selector.  No validation happens
    here: unknown kinds and malformed constraints are reported by the filter.

    *params* is either a mapping of name to values or an iterable of
    ``(name, value)`` pairs, e.g. ``request.query_params.multi_items()``.
    """
    if isinstance(params, Mapping):
        pairs = ((name, value) for name, values in params.items() for value in values)
    else:
        pairs = iter(params)
    return [Selector(kind=name, contents=value) for name, value in pairs if value != ""]
