"""Lot workflow — pending flag and soft delete."""

from protean import handle
from protean.fields import Boolean, Identifier
from protean.utils.globals import current_domain

from gemledger.domain import gemledger
from gemledger.errors import NotFound
from gemledger.lot.lot import InventoryLot


@gemledger.command(part_of="InventoryLot")
class SetLotPending:
    """Raise or clear the pending workflow flag on a lot."""

    lot_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    pending = Boolean(default=True)


@gemledger.command(part_of="InventoryLot")
class RemoveLot:
    """Move a lot to the recycle bin (soft delete)."""

    lot_id = Identifier(required=True)
    owner_id = Identifier(required=True)


@gemledger.command_handler(part_of=InventoryLot)
class LotWorkflowHandler:
    @handle(SetLotPending)
    def set_lot_pending(self, command):
        repo = current_domain.repository_for(InventoryLot)
        lot = repo.find_for_owner(command.lot_id, command.owner_id)
        if lot is None:
            raise NotFound("inventory", command.lot_id)

        if command.pending:
            lot.mark_pending()
        else:
            lot.clear_pending()
        repo.add(lot)

    @handle(RemoveLot)
    def remove_lot(self, command):
        repo = current_domain.repository_for(InventoryLot)
        lot = repo.find_for_owner(command.lot_id, command.owner_id)
        if lot is None:
            raise NotFound("inventory", command.lot_id)

        lot.remove()
        repo.add(lot)
