"""Audit sink port (abstract interface).

The sale handlers never write audit entries themselves. Sale events are
turned into ``AuditRecord`` values and handed to whichever sink is active:
the repository-backed sink in the running service, a fake one in tests.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime


@dataclass(frozen=True)
class AuditRecord:
    """One append-only audit fact."""

    action: str
    entity_type: str
    entity_id: str
    owner_id: str
    performed_by: str | None = None
    meta: dict = field(default_factory=dict)
    recorded_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class AuditSink(ABC):
    """Abstract audit sink interface."""

    @abstractmethod
    def record(self, entry: AuditRecord) -> None:
        """Append ``entry``. Raises ``AuditSinkFailure`` when it cannot."""
        ...
