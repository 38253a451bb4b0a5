"""Undoing a sale — command and handler.

Only admins may undo. The referenced lot is looked up even when it sits in
the recycle bin; a lot that is gone altogether leaves the sale untouched.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from gemledger.domain import gemledger
from gemledger.errors import AlreadyCancelled, NotFound, OrphanedReference, PermissionDenied
from gemledger.lot.lot import InventoryLot
from gemledger.lot.quantities import validate_restore
from gemledger.sale.sale import SaleTransaction

logger = structlog.get_logger(__name__)

ADMIN_ROLE = "admin"


@gemledger.command(part_of="SaleTransaction")
class UndoSale:
    """Cancel a sale and put its stock back into the lot."""

    sale_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    actor_id = Identifier()
    actor_role = String(max_length=20)
    reason = String(max_length=500)


@gemledger.command_handler(part_of=SaleTransaction)
class UndoSaleHandler:
    @handle(UndoSale)
    def undo_sale(self, command):
        if command.actor_role != ADMIN_ROLE:
            raise PermissionDenied("undo sales")

        sales = current_domain.repository_for(SaleTransaction)
        sale = sales.find_for_owner(command.sale_id, command.owner_id)
        if sale is None:
            raise NotFound("sale", command.sale_id)
        if sale.cancelled:
            raise AlreadyCancelled(sale.sale_ref)

        lots = current_domain.repository_for(InventoryLot)
        lot = lots.find_for_owner(sale.inventory_id, command.owner_id, include_deleted=True)
        if lot is None:
            logger.warning(
                "Sale references a missing lot",
                sale_ref=sale.sale_ref,
                inventory_id=str(sale.inventory_id),
                owner_id=str(command.owner_id),
            )
            raise OrphanedReference(sale.sale_ref, sale.inventory_id)

        deltas = validate_restore(lot, [line.as_line() for line in sale.sold_shapes])
        lot.apply_restore(deltas)
        lots.add(lot)

        sale.cancel(command.actor_id, command.reason)
        sales.add(sale)

        logger.info(
            "Sale undone",
            sale_ref=sale.sale_ref,
            inventory_id=str(lot.id),
            owner_id=str(command.owner_id),
            restored_pieces=sale.total_pieces,
            restored_weight=sale.total_weight,
            lot_status=lot.status,
        )
        return str(sale.id)
