"""GemLedger bounded context — gemstone lots, sales and their audit trail.

Tracks inventory lots by shape, piece count and carat weight, records partial
or full sales against them, and keeps the lot balances, sale records and audit
trail consistent when a sale is made or undone.
"""

from protean.domain import Domain

from gemledger.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

gemledger = Domain(name="gemledger")
