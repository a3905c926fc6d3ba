"""Map domain errors to JSON HTTP responses."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ackflow.domain.errors import (
    AckflowError,
    AggregationError,
    ConflictError,
    DeliveryError,
    NotFoundError,
    StateTransitionError,
    ValidationError,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR: dict[type[AckflowError], int] = {
    ValidationError: 422,
    NotFoundError: 404,
    ConflictError: 409,
    StateTransitionError: 409,
    DeliveryError: 502,
    AggregationError: 503,
}


def status_for(exc: AckflowError) -> int:
    for cls in type(exc).__mro__:
        if cls in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[cls]
    return 400


async def ackflow_error_handler(request: Request, exc: AckflowError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.code, "detail": exc.message, "context": _jsonable(exc.details)},
    )


def _jsonable(details: dict) -> dict:
    return {k: v if isinstance(v, (str, int, float, bool, list, type(None))) else str(v)
            for k, v in details.items()}


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AckflowError, ackflow_error_handler)
