"""Exception handlers rendering engagement errors as a JSON envelope.

Envelope keys: error, message, details.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.engagements.errors import EngagementError, SettlementPartialFailure

logger = logging.getLogger(__name__)


def _envelope(exc: EngagementError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.code,
            "message": exc.message,
            "details": exc.details,
        },
    )


async def _engagement_error_handler(request: Request, exc: EngagementError) -> JSONResponse:
    return _envelope(exc)


async def _settlement_failure_handler(
    request: Request, exc: SettlementPartialFailure,
) -> JSONResponse:
    logger.error("Settlement failure on %s %s: engagement=%s step=%s",
                 request.method, request.url.path, exc.engagement_id, exc.failed_step)
    return _envelope(exc)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(SettlementPartialFailure, _settlement_failure_handler)
    app.add_exception_handler(EngagementError, _engagement_error_handler)
