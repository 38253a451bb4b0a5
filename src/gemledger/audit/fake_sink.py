"""Configurable in-memory audit sink for tests.

Records every entry it is handed and can be switched to fail, so tests can
check that a broken audit trail never fails a sale or an undo.
"""

from gemledger.audit.port import AuditRecord, AuditSink
from gemledger.errors import AuditSinkFailure


class FakeAuditSink(AuditSink):
    """Configurable fake audit sink."""

    def __init__(self) -> None:
        self.should_fail: bool = False
        self.failure_reason: str = "Audit store unavailable"
        self.calls: list[AuditRecord] = []
        self.records: list[AuditRecord] = []

    def configure(self, should_fail: bool, failure_reason: str = "Audit store unavailable") -> None:
        self.should_fail = should_fail
        self.failure_reason = failure_reason

    def record(self, entry: AuditRecord) -> None:
        self.calls.append(entry)
        if self.should_fail:
            raise AuditSinkFailure(entry.action, self.failure_reason)
        self.records.append(entry)

    def actions(self) -> list[str]:
        return [entry.action for entry in self.records]
