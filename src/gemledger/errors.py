"""Typed errors raised by the lot and sale ledger.

Every error carries a field-keyed ``messages`` dict, the same shape protean's
``ValidationError`` uses, so callers and the HTTP layer can report exactly
which shape or quantity was at fault.
"""

from decimal import Decimal

from protean.exceptions import InvalidOperationError, ObjectNotFoundError, ValidationError


def _fmt(value) -> str:
    if isinstance(value, Decimal):
        return format(value.normalize(), "f")
    if isinstance(value, float):
        return "{:g}".format(value)
    return str(value)


class NotFound(ObjectNotFoundError):
    """The lot or sale does not exist or belongs to another tenant."""

    def __init__(self, entity: str, identifier) -> None:
        self.entity = entity
        self.identifier = str(identifier)
        self.messages = {entity: [f"{entity.replace('_', ' ').capitalize()} {identifier} not found"]}
        super().__init__(self.messages)


class AlreadySold(ValidationError):
    def __init__(self, serial_number: str) -> None:
        self.serial_number = serial_number
        message = f"Lot {serial_number} is already fully sold"
        super().__init__({"inventory": [message]})
        self.messages = {"inventory": [message]}


class AlreadyCancelled(ValidationError):
    def __init__(self, sale_ref: str) -> None:
        self.sale_ref = sale_ref
        message = f"Sale {sale_ref} is already cancelled"
        super().__init__({"sale": [message]})
        self.messages = {"sale": [message]}


class InsufficientStock(ValidationError):
    """More pieces or carats were requested than the lot (or shape) holds."""

    def __init__(self, shape: str | None, field: str, requested, available) -> None:
        self.shape = shape
        self.field = field
        self.requested = requested
        self.available = available

        unit = "pieces" if field == "pieces" else "carats"
        where = f" of {shape}" if shape else ""
        message = f"Only {_fmt(available)} {unit}{where} available, {_fmt(requested)} requested"
        super().__init__({field: [message]})
        self.messages = {field: [message]}


class ShapeNotFound(ValidationError):
    def __init__(self, shape: str | None) -> None:
        self.shape = shape
        message = f'Shape "{shape}" not found in inventory'
        super().__init__({"shape": [message]})
        self.messages = {"shape": [message]}


class InvalidSaleLine(ValidationError):
    """A requested line is malformed (non-positive quantity, wrong shape form)."""

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__({field: [message]})
        self.messages = {field: [message]}


class DuplicateSerialNumber(ValidationError):
    def __init__(self, serial_number: str) -> None:
        self.serial_number = serial_number
        message = f"Serial number {serial_number} is already registered"
        super().__init__({"serial_number": [message]})
        self.messages = {"serial_number": [message]}


class PermissionDenied(InvalidOperationError):
    def __init__(self, action: str, required_role: str = "admin") -> None:
        self.action = action
        self.required_role = required_role
        self.messages = {"role": [f"Only {required_role}s can {action}"]}
        super().__init__(self.messages)


class OrphanedReference(InvalidOperationError):
    """A sale points at a lot that no longer exists; inventory cannot be restored."""

    def __init__(self, sale_ref: str, inventory_id) -> None:
        self.sale_ref = sale_ref
        self.inventory_id = str(inventory_id)
        self.messages = {
            "inventory": [
                f"Lot {inventory_id} referenced by sale {sale_ref} no longer exists; "
                "inventory cannot be restored"
            ]
        }
        super().__init__(self.messages)


class LotIntegrityError(InvalidOperationError):
    """A restore targets a bucket the lot does not have."""

    def __init__(self, serial_number: str, shape: str | None) -> None:
        self.serial_number = serial_number
        self.shape = shape
        target = f'shape "{shape}"' if shape else "the single-shape balance"
        self.messages = {"shape": [f"Lot {serial_number} has no {target} to restore into"]}
        super().__init__(self.messages)


class ConcurrentUpdate(InvalidOperationError):
    """Another request changed the record first; the caller reloads and retries."""

    def __init__(self, record: str) -> None:
        self.record = record
        self.messages = {"version": [f"{record} was changed by another request; reload and retry"]}
        super().__init__(self.messages)


class AuditSinkFailure(Exception):
    """The audit sink could not append an entry. Never fails a sale."""

    def __init__(self, action: str, reason: str) -> None:
        self.action = action
        self.reason = reason
        super().__init__(f"Could not record {action}: {reason}")
