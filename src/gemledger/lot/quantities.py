"""Quantity ledger. Validates and computes lot balance changes. No I/O.

``validate_decrement`` checks a sale request against a lot snapshot and
returns one delta per balance to take out. ``validate_restore`` turns the
lines of a recorded sale back into deltas to put back.

Lines naming the same shape are accumulated before they are checked, so a
request cannot oversell a shape by splitting it across several lines.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from protean.exceptions import ValidationError

from gemledger.errors import InsufficientStock, InvalidSaleLine, ShapeNotFound
from gemledger.lot.lot import carats


@dataclass(frozen=True)
class QuantityDelta:
    """Pieces and carats to move in or out of one balance (``shape`` None for single-shape lots)."""

    shape: str | None
    pieces: int
    weight: Decimal


def _field(line, name):
    if isinstance(line, Mapping):
        return line.get(name)
    return getattr(line, name, None)


def _shape_of(line) -> str | None:
    shape = _field(line, "shape")
    if isinstance(shape, str):
        shape = shape.strip()
    return shape or None


def _requested(line) -> tuple[int, Decimal]:
    pieces = _field(line, "pieces")
    if isinstance(pieces, bool) or not isinstance(pieces, int) or pieces <= 0:
        raise InvalidSaleLine("pieces", f"Pieces sold must be a positive whole number, got {pieces!r}")

    raw_weight = _field(line, "weight")
    try:
        weight = carats(raw_weight)
    except ValidationError:
        raise InvalidSaleLine("weight", f"Weight sold must be a number of carats, got {raw_weight!r}") from None
    if weight <= 0:
        raise InvalidSaleLine("weight", f"Weight sold must be greater than zero, got {weight}")

    for name in ("price_per_carat", "line_total"):
        _price(line, name)

    return pieces, weight


def _price(line, name: str) -> Decimal | None:
    raw = _field(line, name)
    if raw is None:
        return None
    label = name.replace("_", " ").capitalize()
    try:
        value = None if isinstance(raw, bool) else Decimal(str(raw))
    except InvalidOperation:
        value = None
    if value is None or not value.is_finite():
        raise InvalidSaleLine(name, f"{label} must be a number, got {raw!r}")
    if value < 0:
        raise InvalidSaleLine(name, f"{label} must not be negative, got {raw!r}")
    return value


def _check_against(balance, shape, pieces: int, weight: Decimal) -> None:
    if pieces > balance.pieces:
        raise InsufficientStock(shape, "pieces", pieces, balance.pieces)
    available = carats(balance.weight)
    if weight > available:
        raise InsufficientStock(shape, "weight", weight, available)


def validate_decrement(lot, requested_lines) -> list[QuantityDelta]:
    """Validate a sale request against the lot's current balances.

    Raises ``InvalidSaleLine``, ``ShapeNotFound`` or ``InsufficientStock`` for
    the first offending line; nothing is mutated either way.
    """
    lines = list(requested_lines or [])
    if not lines:
        raise InvalidSaleLine("sold_shapes", "At least one sold line is required")

    if lot.is_single:
        if len(lines) != 1:
            raise InvalidSaleLine("sold_shapes", "A single-shape lot is sold as exactly one line")
        line = lines[0]
        if _shape_of(line) is not None:
            raise InvalidSaleLine("shape", "Lines sold from a single-shape lot must not name a shape")
        pieces, weight = _requested(line)
        _check_against(lot.single, None, pieces, weight)
        return [QuantityDelta(shape=None, pieces=pieces, weight=weight)]

    totals: dict[str, tuple[int, Decimal]] = {}
    for line in lines:
        shape = _shape_of(line)
        if shape is None:
            raise InvalidSaleLine("shape", "Each line of a multi-shape sale must name a shape")
        balance = lot.shape_named(shape)
        if balance is None:
            raise ShapeNotFound(shape)

        pieces, weight = _requested(line)
        sold_pieces, sold_weight = totals.get(shape, (0, Decimal("0.000")))
        totals[shape] = (sold_pieces + pieces, sold_weight + weight)
        _check_against(balance, shape, *totals[shape])

    return [QuantityDelta(shape=shape, pieces=p, weight=w) for shape, (p, w) in totals.items()]


def validate_restore(lot, sold_lines) -> list[QuantityDelta]:
    """Deltas that put a recorded sale back. Restoring sold stock cannot go negative."""
    totals: dict[str | None, tuple[int, Decimal]] = {}
    for line in sold_lines or []:
        shape = _shape_of(line)
        pieces, weight = totals.get(shape, (0, Decimal("0.000")))
        totals[shape] = (pieces + _field(line, "pieces"), weight + carats(_field(line, "weight")))

    return [QuantityDelta(shape=shape, pieces=p, weight=w) for shape, (p, w) in totals.items()]
