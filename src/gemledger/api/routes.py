"""FastAPI routes for GemLedger — lots, sales and the audit trail.

Callers identify themselves with headers; authentication happens upstream:

    X-Owner-Id    tenant every read and write is scoped to
    X-User-Id     acting user, recorded on sales and audit entries
    X-User-Role   ``admin`` or ``staff``
"""

import json
from dataclasses import dataclass

from fastapi import APIRouter, Depends, Header, Query
from protean.exceptions import ExpectedVersionError
from protean.utils.globals import current_domain

from gemledger.api.schemas import (
    AuditEntryResponse,
    AuditListResponse,
    CustomerSchema,
    LotBalanceResponse,
    LotIdResponse,
    LotResponse,
    PageMeta,
    RegisterLotRequest,
    SaleListResponse,
    SaleResponse,
    SellRequest,
    SetPendingRequest,
    SoldLineResponse,
    StatusResponse,
    UndoSaleRequest,
)
from gemledger.audit.entry import AuditEntry
from gemledger.errors import ConcurrentUpdate, NotFound, PermissionDenied
from gemledger.lot.lot import InventoryLot
from gemledger.lot.registration import RegisterLot
from gemledger.lot.workflow import RemoveLot, SetLotPending
from gemledger.sale.cancellation import UndoSale
from gemledger.sale.sale import SaleTransaction
from gemledger.sale.selling import SellLot

SELLING_ROLES = {"admin", "staff"}


@dataclass(frozen=True)
class Caller:
    owner_id: str
    user_id: str | None
    role: str


def current_caller(
    x_owner_id: str = Header(),
    x_user_id: str | None = Header(default=None),
    x_user_role: str = Header(default="staff"),
) -> Caller:
    return Caller(owner_id=x_owner_id, user_id=x_user_id, role=x_user_role.strip().lower())


# ---------------------------------------------------------------------------
# Response builders
# ---------------------------------------------------------------------------
def _lot_response(lot: InventoryLot) -> LotResponse:
    return LotResponse(
        id=str(lot.id),
        serial_number=lot.serial_number,
        shape_type=lot.shape_type,
        status=lot.status,
        is_pending=bool(lot.is_pending),
        is_deleted=bool(lot.is_deleted),
        available_pieces=lot.available_pieces,
        available_weight=float(lot.available_weight),
        balances=[
            LotBalanceResponse(
                shape_name=getattr(balance, "shape_name", None),
                pieces=balance.pieces,
                weight=balance.weight,
                initial_pieces=balance.initial_pieces,
                initial_weight=balance.initial_weight,
            )
            for balance in lot.balances()
        ],
    )


def _sale_response(sale: SaleTransaction) -> SaleResponse:
    customer = sale.customer
    return SaleResponse(
        id=str(sale.id),
        sale_ref=sale.sale_ref,
        inventory_id=str(sale.inventory_id),
        serial_number=sale.serial_number,
        sold_shapes=[SoldLineResponse(**line.as_line()) for line in sale.sold_shapes],
        total_pieces=sale.total_pieces,
        total_weight=sale.total_weight,
        total_amount=sale.total_amount,
        customer=CustomerSchema(
            name=customer.name if customer else None,
            email=(customer.email or None) if customer else None,
            phone=(customer.phone or None) if customer else None,
        ),
        sold_by=str(sale.sold_by) if sale.sold_by else None,
        sold_at=sale.sold_at,
        cancelled=bool(sale.cancelled),
        cancelled_at=sale.cancelled_at,
        cancelled_by=str(sale.cancelled_by) if sale.cancelled_by else None,
        cancel_reason=sale.cancel_reason,
    )


def _process(command, record: str):
    """Run ``command``, reporting a stale write on ``record`` as a conflict."""
    try:
        return current_domain.process(command, asynchronous=False)
    except ExpectedVersionError as exc:
        raise ConcurrentUpdate(record) from exc


def _load_sale(sale_id: str, owner_id: str) -> SaleTransaction:
    sale = current_domain.repository_for(SaleTransaction).find_for_owner(sale_id, owner_id)
    if sale is None:
        raise NotFound("sale", sale_id)
    return sale


# ---------------------------------------------------------------------------
# Lot Router
# ---------------------------------------------------------------------------
lot_router = APIRouter(prefix="/lots", tags=["lots"])


@lot_router.post("", status_code=201, response_model=LotIdResponse)
async def register_lot(body: RegisterLotRequest, caller: Caller = Depends(current_caller)) -> LotIdResponse:
    """Register a new lot for the caller's tenant."""
    command = RegisterLot(
        owner_id=caller.owner_id,
        serial_number=body.serial_number,
        shape_type=body.shape_type,
        pieces=body.pieces,
        weight=body.weight,
        shapes=json.dumps([shape.model_dump() for shape in body.shapes or []]),
    )
    result = current_domain.process(command, asynchronous=False)
    return LotIdResponse(inventory_id=result)


@lot_router.get("/{lot_id}", response_model=LotResponse)
async def get_lot(lot_id: str, caller: Caller = Depends(current_caller)) -> LotResponse:
    lot = current_domain.repository_for(InventoryLot).find_for_owner(lot_id, caller.owner_id)
    if lot is None:
        raise NotFound("inventory", lot_id)
    return _lot_response(lot)


@lot_router.put("/{lot_id}/pending", response_model=StatusResponse)
async def set_lot_pending(
    lot_id: str, body: SetPendingRequest, caller: Caller = Depends(current_caller)
) -> StatusResponse:
    command = SetLotPending(lot_id=lot_id, owner_id=caller.owner_id, pending=body.pending)
    _process(command, f"Lot {lot_id}")
    return StatusResponse(status="pending" if body.pending else "cleared")


@lot_router.delete("/{lot_id}", response_model=StatusResponse)
async def remove_lot(lot_id: str, caller: Caller = Depends(current_caller)) -> StatusResponse:
    """Move a lot to the recycle bin."""
    _process(RemoveLot(lot_id=lot_id, owner_id=caller.owner_id), f"Lot {lot_id}")
    return StatusResponse(status="deleted")


# ---------------------------------------------------------------------------
# Sale Router
# ---------------------------------------------------------------------------
sale_router = APIRouter(prefix="/sales", tags=["sales"])


@sale_router.post("/sell", status_code=201, response_model=SaleResponse)
async def sell(body: SellRequest, caller: Caller = Depends(current_caller)) -> SaleResponse:
    """Sell from a lot and return the recorded sale."""
    if caller.role not in SELLING_ROLES:
        raise PermissionDenied("sell inventory", required_role="staff member")

    command = SellLot(
        inventory_id=body.inventory_id,
        owner_id=caller.owner_id,
        sold_shapes=json.dumps([line.model_dump() for line in body.sold_shapes]),
        customer=json.dumps(body.customer.model_dump()) if body.customer else None,
        performed_by=caller.user_id,
    )
    sale_id = _process(command, f"Lot {body.inventory_id} or today's sale counter")
    return _sale_response(_load_sale(sale_id, caller.owner_id))


@sale_router.get("", response_model=SaleListResponse)
async def list_sales(
    caller: Caller = Depends(current_caller),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1),
    sort_order: str = Query(default="desc", pattern="^(asc|desc)$"),
    search: str | None = None,
    include_cancelled: bool = False,
) -> SaleListResponse:
    result = current_domain.repository_for(SaleTransaction).search(
        caller.owner_id,
        page=page,
        limit=limit,
        sort_order=sort_order,
        search=search,
        include_cancelled=include_cancelled,
    )
    return SaleListResponse(
        items=[_sale_response(sale) for sale in result.items],
        meta=PageMeta(total=result.total, page=result.page, pages=result.pages, limit=result.limit),
    )


@sale_router.get("/{sale_id}", response_model=SaleResponse)
async def get_sale(sale_id: str, caller: Caller = Depends(current_caller)) -> SaleResponse:
    return _sale_response(_load_sale(sale_id, caller.owner_id))


@sale_router.post("/{sale_id}/undo", response_model=SaleResponse)
async def undo_sale(
    sale_id: str, body: UndoSaleRequest | None = None, caller: Caller = Depends(current_caller)
) -> SaleResponse:
    """Cancel a sale and restore its stock. Admins only."""
    command = UndoSale(
        sale_id=sale_id,
        owner_id=caller.owner_id,
        actor_id=caller.user_id,
        actor_role=caller.role,
        reason=body.reason if body else None,
    )
    _process(command, f"Sale {sale_id} or its lot")
    return _sale_response(_load_sale(sale_id, caller.owner_id))


# ---------------------------------------------------------------------------
# Audit Router
# ---------------------------------------------------------------------------
audit_router = APIRouter(prefix="/audit-logs", tags=["audit"])


@audit_router.get("", response_model=AuditListResponse)
async def list_audit_entries(
    caller: Caller = Depends(current_caller),
    action: str | None = None,
    limit: int = Query(default=50, ge=1, le=100),
) -> AuditListResponse:
    entries = current_domain.repository_for(AuditEntry).for_owner(caller.owner_id, action=action, limit=limit)
    return AuditListResponse(
        items=[
            AuditEntryResponse(
                id=str(entry.id),
                action=entry.action,
                entity_type=entry.entity_type,
                entity_id=str(entry.entity_id),
                performed_by=str(entry.performed_by) if entry.performed_by else None,
                meta=json.loads(entry.meta) if entry.meta else {},
                recorded_at=entry.recorded_at,
            )
            for entry in entries
        ]
    )
