"""AuditEntry aggregate: the persisted audit trail, one row per action."""

from enum import Enum

from protean.fields import DateTime, Identifier, String, Text

from gemledger.domain import gemledger


class AuditAction(Enum):
    CREATE_SALE = "CREATE_SALE"
    CANCEL_SALE = "CANCEL_SALE"


@gemledger.aggregate
class AuditEntry:
    action = String(required=True, choices=AuditAction)
    entity_type = String(required=True, max_length=50)
    entity_id = Identifier(required=True)
    performed_by = Identifier()
    owner_id = Identifier(required=True)
    meta = Text()  # JSON snapshot of the action
    recorded_at = DateTime(required=True)


@gemledger.repository(part_of=AuditEntry)
class AuditEntryRepository:
    def for_owner(self, owner_id, action: str | None = None, limit: int = 50) -> list[AuditEntry]:
        """The owner's audit entries, newest first."""
        filters = {"owner_id": str(owner_id)}
        if action:
            filters["action"] = action
        return self._dao.query.filter(**filters).order_by("-recorded_at").limit(limit).all().items

    def for_entity(self, entity_id, owner_id) -> list[AuditEntry]:
        return (
            self._dao.query.filter(entity_id=str(entity_id), owner_id=str(owner_id))
            .order_by("recorded_at")
            .all()
            .items
        )
