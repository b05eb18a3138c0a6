"""REST API routes.

    GET /health  -- sync state of every cached kind (503 until all are ready).
    GET /{kind}  -- cached objects of one kind, optionally filtered by
                    ``labelSelector``, ``fieldSelector`` and ``namespace``
                    query parameters (repeatable, all ANDed).
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response

from kubecache.api.schemas import ErrorResponse, HealthResponse
from kubecache.cache.resource_cache import UnknownKindError
from kubecache.cache.snapshot import serialize_objects
from kubecache.selector import SelectorError, parse_query_params

router = APIRouter()


def _error(status_code: int, error: str, detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, detail=detail).model_dump(),
    )


@router.get("/health", response_model=HealthResponse)
async def health(request: Request) -> JSONResponse:
    cache = request.app.state.cache
    states = {kind: str(state) for kind, state in cache.sync_states().items()}
    ready = cache.is_ready()
    body = HealthResponse(status="ok" if ready else "unready", kinds=states)
    return JSONResponse(status_code=200 if ready else 503, content=body.model_dump())


@router.get("/{kind}")
async def list_objects(kind: str, request: Request) -> Response:
    """Return the cached objects of *kind* as a JSON array."""
    cache = request.app.state.cache
    snapshots = request.app.state.snapshots
    api_client = request.app.state.api_client
    selectors = parse_query_params(request.query_params.multi_items())

    try:
        if not selectors:
            payload = snapshots.get(kind) if snapshots is not None else None
            if payload is None:
                payload = serialize_objects(api_client, cache.get_all(kind))
        else:
            payload = serialize_objects(api_client, cache.get_filtered(kind, selectors))
    except UnknownKindError as exc:
        return _error(404, "UNKNOWN_KIND", str(exc))
    except SelectorError as exc:
        return _error(400, exc.code, str(exc))

    return Response(content=payload, media_type="application/json")
