"""Selling from a lot — command and handler.

The handler runs in one unit of work: the lot decrement, the sale reference
counter and the sale itself commit together or not at all. Every requested
line is validated against the lot before anything is touched.
"""

import json

import structlog
from protean import handle
from protean.fields import Identifier, Text
from protean.utils.globals import current_domain

from gemledger.domain import gemledger
from gemledger.errors import AlreadySold, InvalidSaleLine, NotFound
from gemledger.lot.lot import InventoryLot, LotStatus
from gemledger.lot.quantities import validate_decrement
from gemledger.sale.counter import next_sale_ref
from gemledger.sale.sale import SaleTransaction

logger = structlog.get_logger(__name__)


@gemledger.command(part_of="SaleTransaction")
class SellLot:
    """Sell pieces and carats out of a lot."""

    inventory_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    sold_shapes = Text(required=True)  # JSON: list of {shape, pieces, weight, price_per_carat, line_total}
    customer = Text()  # JSON: {name, email, phone}
    performed_by = Identifier()


def _loads(value):
    return json.loads(value) if isinstance(value, str) else value


@gemledger.command_handler(part_of=SaleTransaction)
class SellLotHandler:
    @handle(SellLot)
    def sell_lot(self, command):
        lots = current_domain.repository_for(InventoryLot)
        lot = lots.find_for_owner(command.inventory_id, command.owner_id)
        if lot is None:
            raise NotFound("inventory", command.inventory_id)
        if lot.status == LotStatus.SOLD.value:
            raise AlreadySold(lot.serial_number)

        requested = _loads(command.sold_shapes)
        if not isinstance(requested, list) or not all(isinstance(line, dict) for line in requested):
            raise InvalidSaleLine("sold_shapes", "Sold lines must be a list of objects")

        deltas = validate_decrement(lot, requested)
        lot.apply_decrement(deltas)
        lots.add(lot)

        sale = SaleTransaction.create(
            owner_id=command.owner_id,
            inventory_id=str(lot.id),
            serial_number=lot.serial_number,
            sale_ref=next_sale_ref(command.owner_id),
            sold_shapes=requested,
            customer=_loads(command.customer),
            sold_by=command.performed_by,
        )
        current_domain.repository_for(SaleTransaction).add(sale)

        logger.info(
            "Sale recorded",
            sale_ref=sale.sale_ref,
            inventory_id=str(lot.id),
            owner_id=str(command.owner_id),
            total_pieces=sale.total_pieces,
            total_weight=sale.total_weight,
            lot_status=lot.status,
        )
        return str(sale.id)
