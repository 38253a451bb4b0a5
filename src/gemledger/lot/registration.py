"""Lot registration — command and handler."""

import json

import structlog
from protean import handle
from protean.fields import Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from gemledger.domain import gemledger
from gemledger.errors import DuplicateSerialNumber
from gemledger.lot.lot import InventoryLot

logger = structlog.get_logger(__name__)


@gemledger.command(part_of="InventoryLot")
class RegisterLot:
    """Register a new gemstone lot for a tenant."""

    owner_id = Identifier(required=True)
    serial_number = String(required=True, max_length=100)
    shape_type = String(required=True, max_length=10)  # single, multi
    pieces = Integer(default=0)  # single-shape lots only
    weight = Float(default=0.0)  # single-shape lots only
    shapes = Text()  # JSON list of {shape_name, pieces, weight}; multi-shape lots only


@gemledger.command_handler(part_of=InventoryLot)
class RegisterLotHandler:
    @handle(RegisterLot)
    def register_lot(self, command):
        repo = current_domain.repository_for(InventoryLot)
        if repo.serial_number_taken(command.owner_id, command.serial_number):
            raise DuplicateSerialNumber(command.serial_number)

        shapes = json.loads(command.shapes) if isinstance(command.shapes, str) else command.shapes
        lot = InventoryLot.register(
            owner_id=command.owner_id,
            serial_number=command.serial_number,
            shape_type=command.shape_type,
            pieces=command.pieces or 0,
            weight=command.weight or 0.0,
            shapes=shapes,
        )
        repo.add(lot)

        logger.info(
            "Lot registered",
            inventory_id=str(lot.id),
            serial_number=lot.serial_number,
            shape_type=lot.shape_type,
            owner_id=str(lot.owner_id),
        )
        return str(lot.id)
