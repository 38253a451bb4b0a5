"""SaleTransaction aggregate (CQRS) — one recorded sale against a lot.

A sale references its lot by id; it never owns it. Totals are always
recomputed from the sold lines, whatever the caller claims. After creation
the only change a sale accepts is being cancelled, once:

    ACTIVE → CANCELLED
"""

import json
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String, ValueObject

from gemledger.domain import gemledger
from gemledger.errors import AlreadyCancelled
from gemledger.lot.lot import carats
from gemledger.sale.events import SaleCancelled, SaleRecorded

CENT = Decimal("0.01")
WALK_IN = "Walk-in"
DEFAULT_CANCEL_REASON = "Undone by admin"


def money(value) -> Decimal:
    if value is None:
        return Decimal("0.00")
    if isinstance(value, float):
        value = repr(value)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@gemledger.value_object(part_of="SaleTransaction")
class Customer:
    name = String(max_length=200, default=WALK_IN)
    email = String(max_length=254, default="")
    phone = String(max_length=50, default="")


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@gemledger.entity(part_of="SaleTransaction")
class SoldShape:
    """One sold line. ``shape`` is empty for single-shape lots."""

    shape = String(max_length=50)
    pieces = Integer(required=True, min_value=1)
    weight = Float(required=True, min_value=0.0)
    price_per_carat = Float(min_value=0.0)
    line_total = Float(default=0.0, min_value=0.0)

    def as_line(self) -> dict:
        return {
            "shape": self.shape,
            "pieces": self.pieces,
            "weight": self.weight,
            "price_per_carat": self.price_per_carat,
            "line_total": self.line_total,
        }


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@gemledger.aggregate
class SaleTransaction:
    owner_id = Identifier(required=True)
    sale_ref = String(required=True, max_length=30)
    inventory_id = Identifier(required=True)
    serial_number = String(required=True, max_length=100)
    sold_shapes = HasMany(SoldShape)
    total_pieces = Integer(default=0)
    total_weight = Float(default=0.0)
    total_amount = Float(default=0.0)
    customer = ValueObject(Customer)
    sold_by = Identifier()
    sold_at = DateTime()
    cancelled = Boolean(default=False)
    cancelled_at = DateTime()
    cancelled_by = Identifier()
    cancel_reason = String(max_length=500)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def totals_match_sold_lines(self):
        lines = self.sold_shapes or []
        if not lines:
            return
        if self.total_pieces != sum(line.pieces for line in lines):
            raise ValidationError({"total_pieces": ["Total pieces must equal the sum of the sold lines"]})
        if carats(self.total_weight) != sum((carats(line.weight) for line in lines), Decimal("0.000")):
            raise ValidationError({"total_weight": ["Total weight must equal the sum of the sold lines"]})
        if money(self.total_amount) != sum((money(line.line_total) for line in lines), Decimal("0.00")):
            raise ValidationError({"total_amount": ["Total amount must equal the sum of the line totals"]})

    @classmethod
    def create(
        cls,
        owner_id: str,
        inventory_id: str,
        serial_number: str,
        sale_ref: str,
        sold_shapes: list[dict],
        customer: dict | None = None,
        sold_by: str | None = None,
    ):
        """Record a sale. Line totals and sale totals are derived here."""
        now = datetime.now(UTC)
        lines = [cls._sold_line(data) for data in sold_shapes]

        total_pieces = sum(line.pieces for line in lines)
        total_weight = sum((carats(line.weight) for line in lines), Decimal("0.000"))
        total_amount = sum((money(line.line_total) for line in lines), Decimal("0.00"))

        customer = customer or {}
        sale = cls(
            owner_id=owner_id,
            sale_ref=sale_ref,
            inventory_id=inventory_id,
            serial_number=serial_number,
            sold_shapes=lines,
            total_pieces=total_pieces,
            total_weight=float(total_weight),
            total_amount=float(total_amount),
            customer=Customer(
                name=customer.get("name") or WALK_IN,
                email=customer.get("email") or "",
                phone=customer.get("phone") or "",
            ),
            sold_by=sold_by,
            sold_at=now,
            created_at=now,
            updated_at=now,
        )

        sale.raise_(
            SaleRecorded(
                sale_id=str(sale.id),
                owner_id=str(owner_id),
                inventory_id=str(inventory_id),
                sale_ref=sale_ref,
                serial_number=serial_number,
                performed_by=sold_by,
                customer_name=sale.customer.name,
                total_pieces=total_pieces,
                total_weight=float(total_weight),
                total_amount=float(total_amount),
                sold_shapes=json.dumps([line.as_line() for line in lines]),
                sold_at=now,
            )
        )
        return sale

    @staticmethod
    def _sold_line(data: dict) -> SoldShape:
        weight = carats(data["weight"])
        price_per_carat = data.get("price_per_carat")
        if price_per_carat is not None:
            line_total = money(weight * Decimal(str(price_per_carat)))
        else:
            line_total = money(data.get("line_total"))

        return SoldShape(
            shape=(data.get("shape") or "").strip() or None,
            pieces=data["pieces"],
            weight=float(weight),
            price_per_carat=float(price_per_carat) if price_per_carat is not None else None,
            line_total=float(line_total),
        )

    def cancel(self, actor_id: str | None, reason: str | None = None) -> None:
        """Flip the sale to cancelled. A sale is cancelled at most once."""
        if self.cancelled:
            raise AlreadyCancelled(self.sale_ref)

        now = datetime.now(UTC)
        reason = (reason or "").strip() or DEFAULT_CANCEL_REASON
        self.cancelled = True
        self.cancelled_at = now
        self.cancelled_by = actor_id
        self.cancel_reason = reason
        self.updated_at = now

        self.raise_(
            SaleCancelled(
                sale_id=str(self.id),
                owner_id=str(self.owner_id),
                inventory_id=str(self.inventory_id),
                sale_ref=self.sale_ref,
                serial_number=self.serial_number,
                cancelled_by=actor_id,
                reason=reason,
                total_amount=self.total_amount,
                restored_pieces=self.total_pieces,
                restored_weight=self.total_weight,
                cancelled_at=now,
            )
        )
