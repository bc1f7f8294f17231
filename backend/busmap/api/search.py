"""Route search endpoint."""

import logging

import orjson
from fastapi import APIRouter, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import Response
from starlette.concurrency import run_in_threadpool

from busmap.config import settings
from busmap.core.errors import DataUnavailable, InvalidInput
from busmap.core.planner import RoutePlanner
from busmap.schemas.search import SearchRequest, SearchResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/search", tags=["search"])

# Will be set by main.py
store = None
trip_logger = None

planner = RoutePlanner(settings)

STATUS_BY_REASON = {
    InvalidInput.reason: 400,
    DataUnavailable.reason: 503,
}


def _json(payload: dict, status_code: int) -> Response:
    return Response(content=orjson.dumps(payload), media_type="application/json", status_code=status_code)


def _respond(result: SearchResponse) -> Response:
    status = 200 if result.success else STATUS_BY_REASON.get(result.reason, 200)
    return _json(result.model_dump(mode="json", by_alias=True, exclude_none=True), status)


@router.post("/route", response_model=SearchResponse, response_model_exclude_none=True)
async def find_route(request: SearchRequest):
    """Find a bus itinerary between two stops or coordinates."""
    graph = store.current if store is not None else None
    # CPU-bound search on an immutable snapshot; keep it off the event loop
    result = await run_in_threadpool(planner.plan, graph, request)

    if result.success and trip_logger is not None:
        trip_logger.submit(request, result)
    return _respond(result)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> Response:
    """Render search validation errors in the search failure contract.

    Other endpoints keep FastAPI's default 422 response.
    """
    if not request.url.path.startswith(router.prefix):
        return await request_validation_exception_handler(request, exc)
    return _json(
        {
            "success": False,
            "reason": InvalidInput.reason,
            "detail": jsonable_encoder(exc.errors()),
        },
        400,
    )
