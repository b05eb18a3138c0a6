"""Pydantic response envelopes for the REST API."""

from __future__ import annotations

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Error envelope returned with every non-2xx response."""

    error: str
    detail: str


class HealthResponse(BaseModel):
    """Sync state of every cached kind."""

    status: str
    kinds: dict[str, str]
