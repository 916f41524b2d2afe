"""Exception handler for structured error responses."""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from ..exceptions import FolioException

logger = logging.getLogger(__name__)


async def folio_exception_handler(request: Request, exc: FolioException) -> JSONResponse:
    """Convert a FolioException into its JSON body and status code.

    Client errors (4xx) log at WARNING, server errors at ERROR.
    """
    level = logging.WARNING if exc.status_code < 500 else logging.ERROR
    logger.log(
        level,
        f"FolioException: {exc.error_code.value}",
        extra={
            "error_code": exc.error_code.value,
            "path": request.url.path,
            "method": request.method,
            "details": exc.details,
            "status_code": exc.status_code,
        },
    )

    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())
