"""Sale reference counter, one record per tenant per UTC day.

References look like ``SALE-20250101-0001``. The counter is incremented in
the same unit of work that records the sale, so a rolled-back sale does not
consume a number.
"""

from datetime import UTC, datetime

from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from gemledger.domain import gemledger


@gemledger.aggregate
class SaleCounter:
    name = String(identifier=True, max_length=200, required=True)  # "saleRef-{owner_id}-{YYYYMMDD}"
    owner_id = Identifier(required=True)
    day = String(max_length=8, required=True)  # "YYYYMMDD"
    value = Integer(default=0, min_value=0)

    def increment(self) -> int:
        self.value = (self.value or 0) + 1
        return self.value


def counter_name(owner_id, day: str) -> str:
    return f"saleRef-{owner_id}-{day}"


def format_sale_ref(day: str, value: int) -> str:
    return f"SALE-{day}-{value:04d}"


def next_sale_ref(owner_id, now: datetime | None = None) -> str:
    """Issue the next sale reference for ``owner_id`` on the given UTC day."""
    day = (now or datetime.now(UTC)).astimezone(UTC).strftime("%Y%m%d")
    name = counter_name(owner_id, day)

    repo = current_domain.repository_for(SaleCounter)
    try:
        counter = repo.get(name)
    except ObjectNotFoundError:
        counter = SaleCounter(name=name, owner_id=str(owner_id), day=day)

    value = counter.increment()
    repo.add(counter)
    return format_sale_ref(day, value)
