"""Mapping from domain exceptions to HTTP errors."""

import logging

from fastapi import HTTPException

from docops.pdf.exceptions import DocumentError, InvalidPageOrder, MalformedDocument, NoValidPages

from ..common.exceptions import OperationTimeout, ValidationException
from ..storage.exceptions import UpstreamUnavailable

logger = logging.getLogger(__name__)


def to_http_exception(error: Exception, action: str) -> HTTPException:
    """
    Translate an operation failure into an HTTPException.

    Callers can tell "nothing to do" (400) from "bad input" (422) from an
    upstream failure (502/504).
    """
    if isinstance(error, HTTPException):
        return error
    if isinstance(error, MalformedDocument):
        return HTTPException(status_code=422, detail={"error": error.error_code, "message": error.message})
    if isinstance(error, (NoValidPages, InvalidPageOrder, ValidationException)):
        return HTTPException(
            status_code=400,
            detail={"error": error.error_code, "message": error.message, **error.details},
        )
    if isinstance(error, DocumentError):
        return HTTPException(status_code=400, detail={"error": error.error_code, "message": error.message})
    if isinstance(error, UpstreamUnavailable):
        logger.error(f"{action} failed upstream: {error}")
        return HTTPException(status_code=502, detail={"error": "UpstreamUnavailable", "message": str(error)})
    if isinstance(error, OperationTimeout):
        return HTTPException(status_code=504, detail={"error": error.error_code, "message": error.message})

    logger.error(f"{action} failed: {error}", exc_info=True)
    return HTTPException(status_code=500, detail=f"Failed to {action}: {error}")
