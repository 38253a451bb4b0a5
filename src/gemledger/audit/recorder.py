"""Audit recorder. Turns sale events into audit entries.

Runs after the sale's unit of work has committed. A sink failure is logged
and dropped; the sale or undo it describes stays committed.
"""

import json

import structlog
from protean.utils.mixins import handle

from gemledger.audit import get_audit_sink
from gemledger.audit.entry import AuditAction
from gemledger.audit.port import AuditRecord
from gemledger.domain import gemledger
from gemledger.errors import AuditSinkFailure
from gemledger.sale.events import SaleCancelled, SaleRecorded
from gemledger.sale.sale import SaleTransaction

logger = structlog.get_logger(__name__)


def _record(entry: AuditRecord) -> None:
    try:
        get_audit_sink().record(entry)
    except AuditSinkFailure as exc:
        logger.warning(
            "audit_sink_failure",
            action=entry.action,
            entity_id=entry.entity_id,
            owner_id=entry.owner_id,
            reason=exc.reason,
        )
    except Exception as exc:
        logger.warning(
            "audit_sink_failure",
            action=entry.action,
            entity_id=entry.entity_id,
            owner_id=entry.owner_id,
            reason=str(exc),
            exc_info=True,
        )


@gemledger.event_handler(part_of=SaleTransaction)
class AuditRecorder:
    """Appends CREATE_SALE and CANCEL_SALE entries to the audit trail."""

    @handle(SaleRecorded)
    def on_sale_recorded(self, event: SaleRecorded) -> None:
        sold_shapes = json.loads(event.sold_shapes) if isinstance(event.sold_shapes, str) else []
        _record(
            AuditRecord(
                action=AuditAction.CREATE_SALE.value,
                entity_type="sale",
                entity_id=str(event.sale_id),
                owner_id=str(event.owner_id),
                performed_by=str(event.performed_by) if event.performed_by else None,
                meta={
                    "sale_ref": event.sale_ref,
                    "serial_number": event.serial_number,
                    "customer": event.customer_name,
                    "total_pieces": event.total_pieces,
                    "total_weight": event.total_weight,
                    "total_amount": event.total_amount,
                    "sold_shapes": sold_shapes,
                },
            )
        )

    @handle(SaleCancelled)
    def on_sale_cancelled(self, event: SaleCancelled) -> None:
        _record(
            AuditRecord(
                action=AuditAction.CANCEL_SALE.value,
                entity_type="sale",
                entity_id=str(event.sale_id),
                owner_id=str(event.owner_id),
                performed_by=str(event.cancelled_by) if event.cancelled_by else None,
                meta={
                    "sale_ref": event.sale_ref,
                    "serial_number": event.serial_number,
                    "reason": event.reason,
                    "total_amount": event.total_amount,
                    "restored_pieces": event.restored_pieces,
                    "restored_weight": event.restored_weight,
                },
            )
        )
