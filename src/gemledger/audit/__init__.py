"""Audit sink factory.

Provides get_audit_sink() / set_audit_sink() to swap implementations:
- RepositoryAuditSink persists AuditEntry aggregates (default)
- FakeAuditSink for tests
"""

from gemledger.audit.port import AuditSink
from gemledger.audit.repository_sink import RepositoryAuditSink

_current_sink: AuditSink | None = None


def get_audit_sink() -> AuditSink:
    """Return the active audit sink. Defaults to RepositoryAuditSink."""
    global _current_sink
    if _current_sink is None:
        _current_sink = RepositoryAuditSink()
    return _current_sink


def set_audit_sink(sink: AuditSink) -> None:
    """Override the active audit sink (useful for tests)."""
    global _current_sink
    _current_sink = sink


def reset_audit_sink() -> None:
    """Reset to the default sink."""
    global _current_sink
    _current_sink = None
