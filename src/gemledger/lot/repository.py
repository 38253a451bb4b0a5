"""Tenant-scoped queries for InventoryLot. Every lookup filters on owner_id."""

from gemledger.domain import gemledger
from gemledger.lot.lot import InventoryLot


@gemledger.repository(part_of=InventoryLot)
class InventoryLotRepository:
    def find_for_owner(self, lot_id, owner_id, include_deleted: bool = False) -> InventoryLot | None:
        """Return the owner's lot, or None. Soft-deleted lots only when asked for."""
        filters = {"id": str(lot_id), "owner_id": str(owner_id)}
        if not include_deleted:
            filters["is_deleted"] = False
        results = self._dao.query.filter(**filters).all().items
        return results[0] if results else None

    def serial_number_taken(self, owner_id, serial_number: str) -> bool:
        """Serial numbers stay reserved while a lot sits in the recycle bin."""
        results = self._dao.query.filter(owner_id=str(owner_id), serial_number=serial_number).all().items
        return bool(results)
