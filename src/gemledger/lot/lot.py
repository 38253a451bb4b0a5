"""InventoryLot aggregate (CQRS) — one gemstone lot and its available balance.

A lot is tracked in one of two shapes, modelled as a tagged variant:

    single:  one piece/weight balance held in the ``single`` value object
    multi:   one balance per cut shape, held in ``shapes`` (LotShape entities)

A lot never carries the payload of the other variant. Each balance remembers
the quantity it was registered with, so the status can tell "untouched" from
"partially sold":

    SOLD            every balance is at zero pieces and zero carats
    PARTIALLY_SOLD  something was sold but stock remains
    PENDING         untouched, with the external workflow flag raised
    IN_STOCK        untouched

Weights are carats kept to three decimal places. Arithmetic on them is done in
``Decimal`` and quantized before being stored.
"""

from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String, ValueObject

from gemledger.domain import gemledger
from gemledger.errors import LotIntegrityError

CARAT = Decimal("0.001")


def carats(value) -> Decimal:
    """Quantize a weight to the carat precision the ledger keeps."""
    if isinstance(value, float):
        value = repr(value)
    try:
        return Decimal(value).quantize(CARAT)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError({"weight": [f"Invalid carat weight: {value!r}"]}) from None


class ShapeType(Enum):
    SINGLE = "single"
    MULTI = "multi"


class LotStatus(Enum):
    IN_STOCK = "in_stock"
    PENDING = "pending"
    PARTIALLY_SOLD = "partially_sold"
    SOLD = "sold"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@gemledger.value_object(part_of="InventoryLot")
class StoneQuantity:
    """Piece/weight balance of a single-shape lot. Replaced, never mutated."""

    pieces = Integer(required=True, min_value=0)
    weight = Float(required=True, min_value=0.0)
    initial_pieces = Integer(required=True, min_value=0)
    initial_weight = Float(required=True, min_value=0.0)

    @invariant.post
    def balance_cannot_exceed_registered_quantity(self):
        if self.pieces > self.initial_pieces or carats(self.weight) > carats(self.initial_weight):
            raise ValidationError({"quantity": ["Available stock cannot exceed the registered quantity"]})


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@gemledger.entity(part_of="InventoryLot")
class LotShape:
    """Balance of one cut shape (round, oval, ...) inside a multi-shape lot."""

    shape_name = String(required=True, max_length=50)
    pieces = Integer(required=True, min_value=0)
    weight = Float(required=True, min_value=0.0)
    initial_pieces = Integer(required=True, min_value=0)
    initial_weight = Float(required=True, min_value=0.0)

    @invariant.post
    def balance_cannot_exceed_registered_quantity(self):
        if self.pieces > self.initial_pieces or carats(self.weight) > carats(self.initial_weight):
            raise ValidationError(
                {"quantity": [f"Available {self.shape_name} stock cannot exceed the registered quantity"]}
            )


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@gemledger.aggregate
class InventoryLot:
    owner_id = Identifier(required=True)
    serial_number = String(required=True, max_length=100)
    shape_type = String(required=True, choices=ShapeType)
    single = ValueObject(StoneQuantity)
    shapes = HasMany(LotShape)
    status = String(choices=LotStatus, default=LotStatus.IN_STOCK.value)
    is_pending = Boolean(default=False)
    is_deleted = Boolean(default=False)
    deleted_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Invariants
    # -------------------------------------------------------------------
    @invariant.post
    def quantities_match_shape_type(self):
        if self.shape_type == ShapeType.SINGLE.value and (self.single is None or self.shapes):
            raise ValidationError({"shape_type": ["A single-shape lot carries exactly one piece/weight balance"]})
        if self.shape_type == ShapeType.MULTI.value and (self.single is not None or not self.shapes):
            raise ValidationError({"shape_type": ["A multi-shape lot carries one balance per shape and no other"]})

    @invariant.post
    def shape_names_are_unique(self):
        names = [shape.shape_name for shape in self.shapes or []]
        if len(names) != len(set(names)):
            raise ValidationError({"shapes": ["Shape names must be unique within a lot"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def register(cls, owner_id, serial_number, shape_type, pieces=0, weight=0.0, shapes=None):
        """Register a new lot.

        Single-shape lots take ``pieces`` and ``weight``; multi-shape lots take
        ``shapes``, a list of dicts with ``shape_name``, ``pieces`` and ``weight``.
        """
        now = datetime.now(UTC)

        if shape_type == ShapeType.SINGLE.value:
            opening = float(carats(weight))
            payload = {
                "single": StoneQuantity(
                    pieces=pieces,
                    weight=opening,
                    initial_pieces=pieces,
                    initial_weight=opening,
                )
            }
        elif shape_type == ShapeType.MULTI.value:
            if not shapes:
                raise ValidationError({"shapes": ["A multi-shape lot needs at least one shape"]})
            payload = {"shapes": [cls._opening_shape(data) for data in shapes]}
        else:
            raise ValidationError({"shape_type": [f"Unknown shape type: {shape_type}"]})

        lot = cls(
            owner_id=owner_id,
            serial_number=serial_number,
            shape_type=shape_type,
            created_at=now,
            updated_at=now,
            **payload,
        )
        lot._refresh_status()
        return lot

    @staticmethod
    def _opening_shape(data) -> LotShape:
        opening = float(carats(data.get("weight", 0)))
        return LotShape(
            shape_name=data.get("shape_name"),
            pieces=data.get("pieces", 0),
            weight=opening,
            initial_pieces=data.get("pieces", 0),
            initial_weight=opening,
        )

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    @property
    def is_single(self) -> bool:
        return self.shape_type == ShapeType.SINGLE.value

    def shape_named(self, shape_name):
        """Return the LotShape called ``shape_name``, or None."""
        return next((s for s in (self.shapes or []) if s.shape_name == shape_name), None)

    def balances(self) -> list:
        """Every piece/weight balance the lot tracks."""
        if self.is_single:
            return [self.single] if self.single is not None else []
        return list(self.shapes or [])

    @property
    def available_pieces(self) -> int:
        return sum(balance.pieces for balance in self.balances())

    @property
    def available_weight(self) -> Decimal:
        return sum((carats(balance.weight) for balance in self.balances()), Decimal("0.000"))

    # -------------------------------------------------------------------
    # Quantity mutation
    # -------------------------------------------------------------------
    def reduce_quantity(self, shape_name, pieces, weight):
        """Take ``pieces``/``weight`` out of one balance.

        Callers validate sufficiency through the quantity ledger first. A
        reduction that would leave a negative balance is rejected, never
        clamped.
        """
        balance = self._balance_for(shape_name)
        new_pieces = balance.pieces - pieces
        new_weight = carats(balance.weight) - carats(weight)
        if new_pieces < 0 or new_weight < 0:
            label = shape_name or self.serial_number
            raise ValidationError(
                {"quantity": [f"Reducing {label} by {pieces} pcs / {carats(weight)} ct would leave a negative balance"]}
            )
        self._set_balance(balance, new_pieces, new_weight)

    def restore_quantity(self, shape_name, pieces, weight):
        """Put ``pieces``/``weight`` back into one balance.

        A missing balance means the lot changed under the sale; that is a
        ``LotIntegrityError``, never silently skipped.
        """
        balance = self._balance_for(shape_name)
        self._set_balance(balance, balance.pieces + pieces, carats(balance.weight) + carats(weight))

    def apply_decrement(self, deltas) -> None:
        """Apply every validated delta of a sale before the lot is persisted."""
        with atomic_change(self):
            for delta in deltas:
                self.reduce_quantity(delta.shape, delta.pieces, delta.weight)

    def apply_restore(self, deltas) -> None:
        with atomic_change(self):
            for delta in deltas:
                self.restore_quantity(delta.shape, delta.pieces, delta.weight)

    def _balance_for(self, shape_name):
        if self.is_single:
            if shape_name or self.single is None:
                raise LotIntegrityError(self.serial_number, shape_name)
            return self.single

        shape = self.shape_named(shape_name)
        if shape is None:
            raise LotIntegrityError(self.serial_number, shape_name)
        return shape

    def _set_balance(self, balance, pieces, weight: Decimal) -> None:
        if self.is_single:
            self.single = StoneQuantity(
                pieces=pieces,
                weight=float(weight),
                initial_pieces=balance.initial_pieces,
                initial_weight=balance.initial_weight,
            )
        else:
            balance.pieces = pieces
            balance.weight = float(weight)

        self.updated_at = datetime.now(UTC)
        self._refresh_status()

    def _refresh_status(self) -> None:
        balances = self.balances()
        remaining = any(b.pieces > 0 or carats(b.weight) > 0 for b in balances)
        consumed = any(
            b.pieces < b.initial_pieces or carats(b.weight) < carats(b.initial_weight) for b in balances
        )

        if not remaining:
            status = LotStatus.SOLD
        elif consumed:
            status = LotStatus.PARTIALLY_SOLD
        elif self.is_pending:
            status = LotStatus.PENDING
        else:
            status = LotStatus.IN_STOCK

        if self.status != status.value:
            self.status = status.value

    # -------------------------------------------------------------------
    # Workflow
    # -------------------------------------------------------------------
    def mark_pending(self) -> None:
        self.is_pending = True
        self.updated_at = datetime.now(UTC)
        self._refresh_status()

    def clear_pending(self) -> None:
        self.is_pending = False
        self.updated_at = datetime.now(UTC)
        self._refresh_status()

    def remove(self) -> None:
        """Soft-delete the lot. Sales against it can still be undone."""
        if self.is_deleted:
            raise ValidationError({"inventory": [f"Lot {self.serial_number} is already deleted"]})
        now = datetime.now(UTC)
        self.is_deleted = True
        self.deleted_at = now
        self.updated_at = now
