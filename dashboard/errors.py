"""Mapping from domain exceptions to JSON error responses."""

import logging

from fastapi.responses import JSONResponse

from tracker.models import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def error_response(error: Exception, context: str) -> JSONResponse:
    """``{"error": ...}`` with 400 for bad input, 404 for missing rows, else 500."""
    if isinstance(error, ValidationError):
        status_code = 400
    elif isinstance(error, NotFoundError):
        status_code = 404
    else:
        status_code = 500
        logger.error(f"{context}: {error}")
    return JSONResponse({"error": str(error)}, status_code=status_code)
