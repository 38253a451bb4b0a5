"""Shared BDD fixtures and step definitions for the sale ledger."""

import json

import pytest
from gemledger.lot.lot import InventoryLot
from gemledger.lot.registration import RegisterLot
from gemledger.sale.sale import SaleTransaction
from protean import current_domain
from pytest_bdd import given, parsers, then

OWNER = "owner-bdd"


@pytest.fixture()
def ledger():
    """Scenario state: the lot under test, sales made and any captured error."""
    return {"lot_id": None, "sales": [], "error": None}


def current_lot(ledger):
    return current_domain.repository_for(InventoryLot).get(ledger["lot_id"])


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a single-shape lot "{serial_number}" with {pieces:d} pieces weighing {weight:f} carats'))
def single_shape_lot(ledger, serial_number, pieces, weight):
    ledger["lot_id"] = current_domain.process(
        RegisterLot(owner_id=OWNER, serial_number=serial_number, shape_type="single", pieces=pieces, weight=weight),
        asynchronous=False,
    )


@given(
    parsers.cfparse(
        'a multi-shape lot "{serial_number}" with {round_pieces:d} round weighing {round_weight:f} carats '
        "and {oval_pieces:d} oval weighing {oval_weight:f} carats"
    )
)
def multi_shape_lot(ledger, serial_number, round_pieces, round_weight, oval_pieces, oval_weight):
    ledger["lot_id"] = current_domain.process(
        RegisterLot(
            owner_id=OWNER,
            serial_number=serial_number,
            shape_type="multi",
            shapes=json.dumps(
                [
                    {"shape_name": "round", "pieces": round_pieces, "weight": round_weight},
                    {"shape_name": "oval", "pieces": oval_pieces, "weight": oval_weight},
                ]
            ),
        ),
        asynchronous=False,
    )


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the lot has {pieces:d} pieces weighing {weight:f} carats"))
def lot_balance(ledger, pieces, weight):
    lot = current_lot(ledger)
    assert lot.single.pieces == pieces
    assert lot.single.weight == pytest.approx(weight)


@then(parsers.cfparse('shape "{shape}" has {pieces:d} pieces weighing {weight:f} carats'))
def shape_balance(ledger, shape, pieces, weight):
    balance = current_lot(ledger).shape_named(shape)
    assert balance.pieces == pieces
    assert balance.weight == pytest.approx(weight)


@then(parsers.cfparse('the lot status is "{status}"'))
def lot_status(ledger, status):
    assert current_lot(ledger).status == status


@then("no sale was recorded")
def no_sale_recorded(ledger):
    assert ledger["sales"] == []
    assert current_domain.repository_for(SaleTransaction)._dao.query.all().items == []
