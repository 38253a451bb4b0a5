"""Audit sink that persists entries as AuditEntry aggregates."""

import json

from protean.exceptions import ProteanException
from protean.utils.globals import current_domain

from gemledger.audit.entry import AuditEntry
from gemledger.audit.port import AuditRecord, AuditSink
from gemledger.errors import AuditSinkFailure


class RepositoryAuditSink(AuditSink):
    def record(self, entry: AuditRecord) -> None:
        try:
            current_domain.repository_for(AuditEntry).add(
                AuditEntry(
                    action=entry.action,
                    entity_type=entry.entity_type,
                    entity_id=entry.entity_id,
                    performed_by=entry.performed_by,
                    owner_id=entry.owner_id,
                    meta=json.dumps(entry.meta),
                    recorded_at=entry.recorded_at,
                )
            )
        except (ProteanException, TypeError, ValueError) as exc:
            raise AuditSinkFailure(entry.action, str(exc)) from exc
