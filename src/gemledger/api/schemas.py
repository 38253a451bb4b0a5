"""Pydantic request/response schemas for the GemLedger API.

These are external contracts — separate from internal Protean commands.
Quantities are checked by the ledger itself, not here, so a bad sale line is
reported with the same field-keyed message whatever the entry point.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class LotShapeSchema(BaseModel):
    shape_name: str
    pieces: int = Field(ge=0)
    weight: float = Field(ge=0)


class SoldLineSchema(BaseModel):
    shape: str | None = None
    pieces: int
    weight: float
    price_per_carat: float | None = Field(default=None, ge=0)
    line_total: float | None = Field(default=None, ge=0)


class CustomerSchema(BaseModel):
    name: str | None = None
    email: str | None = None
    phone: str | None = None


# ---------------------------------------------------------------------------
# Lot Schemas
# ---------------------------------------------------------------------------
class RegisterLotRequest(BaseModel):
    serial_number: str = Field(min_length=1, max_length=100)
    shape_type: Literal["single", "multi"]
    pieces: int = Field(default=0, ge=0)
    weight: float = Field(default=0.0, ge=0)
    shapes: list[LotShapeSchema] | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"serial_number": "RB-1001", "shape_type": "single", "pieces": 10, "weight": 5.0},
                {
                    "serial_number": "MX-2001",
                    "shape_type": "multi",
                    "shapes": [
                        {"shape_name": "round", "pieces": 10, "weight": 5.0},
                        {"shape_name": "oval", "pieces": 4, "weight": 2.0},
                    ],
                },
            ]
        }
    }


class SetPendingRequest(BaseModel):
    pending: bool = True


class LotBalanceResponse(BaseModel):
    shape_name: str | None = None
    pieces: int
    weight: float
    initial_pieces: int
    initial_weight: float


class LotResponse(BaseModel):
    id: str
    serial_number: str
    shape_type: str
    status: str
    is_pending: bool
    is_deleted: bool
    available_pieces: int
    available_weight: float
    balances: list[LotBalanceResponse]


class LotIdResponse(BaseModel):
    inventory_id: str


# ---------------------------------------------------------------------------
# Sale Schemas
# ---------------------------------------------------------------------------
class SellRequest(BaseModel):
    inventory_id: str
    sold_shapes: list[SoldLineSchema]
    customer: CustomerSchema | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "inventory_id": "lot-001",
                    "sold_shapes": [{"shape": "oval", "pieces": 2, "weight": 1.0, "price_per_carat": 1200}],
                    "customer": {"name": "Asha Traders", "email": "buying@asha.example"},
                }
            ]
        }
    }


class UndoSaleRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


class SoldLineResponse(BaseModel):
    shape: str | None = None
    pieces: int
    weight: float
    price_per_carat: float | None = None
    line_total: float


class SaleResponse(BaseModel):
    id: str
    sale_ref: str
    inventory_id: str
    serial_number: str
    sold_shapes: list[SoldLineResponse]
    total_pieces: int
    total_weight: float
    total_amount: float
    customer: CustomerSchema
    sold_by: str | None = None
    sold_at: datetime | None = None
    cancelled: bool
    cancelled_at: datetime | None = None
    cancelled_by: str | None = None
    cancel_reason: str | None = None


class PageMeta(BaseModel):
    total: int
    page: int
    pages: int
    limit: int


class SaleListResponse(BaseModel):
    items: list[SaleResponse]
    meta: PageMeta


# ---------------------------------------------------------------------------
# Audit Schemas
# ---------------------------------------------------------------------------
class AuditEntryResponse(BaseModel):
    id: str
    action: str
    entity_type: str
    entity_id: str
    performed_by: str | None = None
    meta: dict
    recorded_at: datetime


class AuditListResponse(BaseModel):
    items: list[AuditEntryResponse]


class StatusResponse(BaseModel):
    status: str = "ok"
