"""Exception handlers mapping the error taxonomy to JSON responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.errors import AdoptionError, UpstreamFailure

logger = logging.getLogger(__name__)


async def adoption_error_handler(request: Request, exc: AdoptionError) -> JSONResponse:
    if isinstance(exc, UpstreamFailure):
        logger.error("Upstream failure on %s %s", request.method, request.url.path)
    else:
        logger.info(
            "%s on %s %s: %s",
            exc.code,
            request.method,
            request.url.path,
            exc.message,
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": exc.code},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AdoptionError, adoption_error_handler)  # type: ignore[arg-type]
