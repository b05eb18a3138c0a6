"""Selector value objects."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class SelectorKind(StrEnum):
    """Known selector kinds, named after the query parameters that carry them."""

    LABEL = "labelSelector"
    FIELD = "fieldSelector"
    NAMESPACE = "namespace"


@dataclass(frozen=True)
class Selector:
    """A named filter expression applied to a query.

    ``kind`` is kept as the raw parameter name rather than a ``SelectorKind`` so
    that an unknown kind surfaces as an error during evaluation, not parsing.
    ``contents`` is a comma-separated list of constraints, all of which must hold.
    """

    kind: str
    contents: str

    def constraints(self) -> list[str]:
        return self.contents.split(",")
