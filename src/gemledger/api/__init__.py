"""GemLedger API package."""

from gemledger.api.errors import register_ledger_exception_handlers
from gemledger.api.routes import audit_router, lot_router, sale_router

__all__ = ["lot_router", "sale_router", "audit_router", "register_ledger_exception_handlers"]
