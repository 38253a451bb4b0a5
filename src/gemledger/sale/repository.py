"""Tenant-scoped queries for SaleTransaction."""

import math
from dataclasses import dataclass, field

from protean.utils.query import Q

from gemledger.domain import gemledger
from gemledger.sale.sale import SaleTransaction

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 20


@dataclass(frozen=True)
class SalePage:
    items: list = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


@gemledger.repository(part_of=SaleTransaction)
class SaleTransactionRepository:
    def find_for_owner(self, sale_id, owner_id) -> SaleTransaction | None:
        results = self._dao.query.filter(id=str(sale_id), owner_id=str(owner_id)).all().items
        return results[0] if results else None

    def search(
        self,
        owner_id,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        sort_order: str = "desc",
        search: str | None = None,
        include_cancelled: bool = False,
    ) -> SalePage:
        """List the owner's sales, newest first unless ``sort_order`` is ``asc``.

        ``search`` matches case-insensitively against the sale reference, the
        lot serial number and the customer's name, email and phone.
        """
        page = max(int(page or 1), 1)
        limit = min(max(int(limit or DEFAULT_PAGE_SIZE), 1), MAX_PAGE_SIZE)

        query = self._dao.query.filter(owner_id=str(owner_id))
        if not include_cancelled:
            query = query.filter(cancelled=False)

        term = (search or "").strip()
        if term:
            query = query.filter(
                Q(sale_ref__icontains=term)
                | Q(serial_number__icontains=term)
                | Q(customer_name__icontains=term)
                | Q(customer_email__icontains=term)
                | Q(customer_phone__icontains=term)
            )

        ordering = "sold_at" if sort_order == "asc" else "-sold_at"
        results = query.order_by(ordering).offset((page - 1) * limit).limit(limit).all()
        return SalePage(items=results.items, total=results.total, page=page, limit=limit)
