"""HTTP mapping for ledger errors.

Starlette picks the handler registered for the closest class in the
exception's MRO, so these win over protean's generic handlers.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ExpectedVersionError
from protean.integrations.fastapi import register_exception_handlers

from gemledger.errors import (
    AlreadyCancelled,
    AlreadySold,
    ConcurrentUpdate,
    DuplicateSerialNumber,
    InsufficientStock,
    InvalidSaleLine,
    LotIntegrityError,
    NotFound,
    OrphanedReference,
    PermissionDenied,
    ShapeNotFound,
)

logger = structlog.get_logger(__name__)

STATUS_BY_ERROR = {
    NotFound: 404,
    AlreadySold: 409,
    AlreadyCancelled: 409,
    InsufficientStock: 400,
    ShapeNotFound: 400,
    InvalidSaleLine: 400,
    DuplicateSerialNumber: 400,
    PermissionDenied: 403,
    OrphanedReference: 409,
    LotIntegrityError: 409,
    ConcurrentUpdate: 409,
}


def _handler_for(status_code: int):
    async def handle_ledger_error(request: Request, exc: Exception) -> JSONResponse:
        if status_code >= 409:
            logger.warning(
                "Ledger request rejected",
                path=request.url.path,
                error=type(exc).__name__,
                status_code=status_code,
            )
        return JSONResponse(status_code=status_code, content={"error": exc.messages})

    return handle_ledger_error


async def handle_stale_write(request: Request, exc: ExpectedVersionError) -> JSONResponse:
    logger.warning("Stale write rejected", path=request.url.path, detail=str(exc))
    return JSONResponse(
        status_code=409,
        content={"error": {"version": ["The record was changed by another request; reload and retry"]}},
    )


def register_ledger_exception_handlers(app: FastAPI) -> None:
    """Register ledger error handlers, then protean's for everything else."""
    for exc_class, status_code in STATUS_BY_ERROR.items():
        app.add_exception_handler(exc_class, _handler_for(status_code))
    app.add_exception_handler(ExpectedVersionError, handle_stale_write)
    register_exception_handlers(app)
