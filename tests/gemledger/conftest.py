import pytest
from protean import current_domain
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def gemledger_bed():
    from gemledger.domain import gemledger

    bed = DomainFixture(gemledger)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(gemledger_bed):
    from gemledger.audit import reset_audit_sink

    with gemledger_bed.domain_context():
        yield

        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()
        reset_audit_sink()
