"""GemLedger FastAPI application.

Processes commands synchronously via HTTP. Every request runs inside the
gemledger domain context, with the caller's tenant bound to the log context.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the config overlay from gemledger/domain.toml.
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from gemledger.domain import gemledger
from gemledger.utils.logging import bind_request_context, clear_request_context

gemledger.init()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="GemLedger API",
    description="Gemstone inventory and sales ledger",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the gemledger domain context and bind request details for logging."""
    bind_request_context(
        path=request.url.path,
        method=request.method,
        owner_id=request.headers.get("x-owner-id"),
        user_id=request.headers.get("x-user-id"),
    )
    try:
        with gemledger.domain_context():
            response = await call_next(request)
        return response
    finally:
        clear_request_context()


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from gemledger.api import audit_router, lot_router, register_ledger_exception_handlers, sale_router  # noqa: E402

app.include_router(lot_router)
app.include_router(sale_router)
app.include_router(audit_router)
register_ledger_exception_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domain": {"name": gemledger.name},
        }
    )
