"""Registry of resource kinds the cache knows how to list and watch."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class KindSpec:
    """How to list one resource kind across all namespaces."""

    kind: str
    api_class: str
    list_method: str


_REGISTRY: dict[str, KindSpec] = {
    spec.kind: spec
    for spec in (
        KindSpec("namespaces", "CoreV1Api", "list_namespace"),
        KindSpec("pods", "CoreV1Api", "list_pod_for_all_namespaces"),
        KindSpec("ingresses", "NetworkingV1Api", "list_ingress_for_all_namespaces"),
        KindSpec("networkpolicies", "NetworkingV1Api", "list_network_policy_for_all_namespaces"),
    )
}


class UnsupportedKindError(ValueError):
    """Raised for a kind that has no entry in the registry."""

    def __init__(self, kind: str) -> None:
        super().__init__(f"Unsupported resource kind: {kind!r}. Must be one of {supported_kinds()}")
        self.kind = kind


def supported_kinds() -> list[str]:
    return list(_REGISTRY)


def lookup_kind(kind: str) -> KindSpec:
    try:
        return _REGISTRY[kind]
    except KeyError:
        raise UnsupportedKindError(kind) from None
