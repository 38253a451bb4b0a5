"""Domain events for the SaleTransaction aggregate.

Both events carry the snapshot the audit trail needs, so the audit recorder
never has to reload the sale or the lot.
"""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from gemledger.domain import gemledger


@gemledger.event(part_of="SaleTransaction")
class SaleRecorded:
    """Stock was taken out of a lot and a sale was recorded."""

    __version__ = 1

    sale_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    inventory_id = Identifier(required=True)
    sale_ref = String(required=True)
    serial_number = String(required=True)
    performed_by = Identifier()
    customer_name = String()
    total_pieces = Integer(required=True)
    total_weight = Float(required=True)
    total_amount = Float(required=True)
    sold_shapes = Text(required=True)  # JSON: list of sold line dicts
    sold_at = DateTime(required=True)


@gemledger.event(part_of="SaleTransaction")
class SaleCancelled:
    """A sale was undone and its stock put back into the lot."""

    __version__ = 1

    sale_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    inventory_id = Identifier(required=True)
    sale_ref = String(required=True)
    serial_number = String(required=True)
    cancelled_by = Identifier()
    reason = String(required=True)
    total_amount = Float(required=True)
    restored_pieces = Integer(required=True)
    restored_weight = Float(required=True)
    cancelled_at = DateTime(required=True)
