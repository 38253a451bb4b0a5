"""Schema management for SQL-backed providers.

The memory provider needs no schema; for sqlite/postgresql providers every
aggregate and entity DAO is touched once so its table is registered on the
provider's metadata before ``create_all``/``drop_all`` runs.
"""

from protean.domain import Domain
from sqlalchemy import create_engine

_SQL_PROVIDERS = ("sqlite", "postgresql")


def _sql_providers(domain: Domain):
    for _, provider in domain.providers.items():
        if provider.conn_info["provider"] in _SQL_PROVIDERS:
            yield provider


def _register_tables(domain: Domain, provider) -> None:
    records = list(domain.registry.aggregates.values()) + list(domain.registry.entities.values())
    for record in records:
        if record.cls.meta_.provider == provider.name:
            domain.repository_for(record.cls)._dao  # noqa: B018

    if hasattr(domain, "_outbox_repos") and provider.name in domain._outbox_repos:
        domain._outbox_repos[provider.name]._dao  # noqa: B018


def setup_db(domain: Domain) -> None:
    """Create tables for lots, sales, counters and audit entries."""
    with domain.domain_context():
        for provider in _sql_providers(domain):
            _register_tables(domain, provider)
            provider._metadata.create_all(create_engine(provider.conn_info["database_uri"]))


def drop_db(domain: Domain) -> None:
    with domain.domain_context():
        for provider in _sql_providers(domain):
            provider._metadata.drop_all(create_engine(provider.conn_info["database_uri"]))
