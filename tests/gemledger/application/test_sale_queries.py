"""Tests for listing and searching a tenant's sales."""

import json

import pytest
from gemledger.lot.registration import RegisterLot
from gemledger.sale.cancellation import UndoSale
from gemledger.sale.repository import MAX_PAGE_SIZE
from gemledger.sale.sale import SaleTransaction
from gemledger.sale.selling import SellLot
from protean import current_domain

OWNER = "owner-query"


@pytest.fixture()
def lot_id():
    return current_domain.process(
        RegisterLot(owner_id=OWNER, serial_number="RB-5001", shape_type="single", pieces=100, weight=50.0),
        asynchronous=False,
    )


def _sell(lot_id, customer=None, owner_id=OWNER):
    return current_domain.process(
        SellLot(
            inventory_id=lot_id,
            owner_id=owner_id,
            sold_shapes=json.dumps([{"pieces": 1, "weight": 0.5}]),
            customer=json.dumps(customer) if customer else None,
        ),
        asynchronous=False,
    )


def _repo():
    return current_domain.repository_for(SaleTransaction)


class TestFindForOwner:
    def test_found_for_owner(self, lot_id):
        sale_id = _sell(lot_id)
        assert _repo().find_for_owner(sale_id, OWNER).id == sale_id

    def test_hidden_from_other_tenant(self, lot_id):
        sale_id = _sell(lot_id)
        assert _repo().find_for_owner(sale_id, "owner-other") is None


class TestSearchSales:
    def test_paging_meta(self, lot_id):
        for _ in range(5):
            _sell(lot_id)

        page = _repo().search(OWNER, page=2, limit=2)
        assert page.total == 5
        assert page.pages == 3
        assert page.page == 2
        assert len(page.items) == 2

    def test_limit_is_capped(self, lot_id):
        _sell(lot_id)
        assert _repo().search(OWNER, limit=1000).limit == MAX_PAGE_SIZE

    def test_newest_first_by_default(self, lot_id):
        first = _sell(lot_id)
        last = _sell(lot_id)

        items = _repo().search(OWNER).items
        assert [s.id for s in items] == [last, first]
        assert [s.id for s in _repo().search(OWNER, sort_order="asc").items] == [first, last]

    def test_cancelled_hidden_unless_asked(self, lot_id):
        kept = _sell(lot_id)
        undone = _sell(lot_id)
        current_domain.process(
            UndoSale(sale_id=undone, owner_id=OWNER, actor_id="admin-1", actor_role="admin"),
            asynchronous=False,
        )

        assert [s.id for s in _repo().search(OWNER).items] == [kept]
        assert _repo().search(OWNER, include_cancelled=True).total == 2

    def test_search_by_customer_name(self, lot_id):
        match = _sell(lot_id, customer={"name": "Asha Traders", "email": "buying@asha.example"})
        _sell(lot_id, customer={"name": "Blue Nile"})

        items = _repo().search(OWNER, search="asha").items
        assert [s.id for s in items] == [match]

    def test_search_by_sale_ref(self, lot_id):
        sale_id = _sell(lot_id)
        _sell(lot_id)
        ref = _repo().get(sale_id).sale_ref

        items = _repo().search(OWNER, search=ref.lower()).items
        assert [s.id for s in items] == [sale_id]

    def test_other_tenant_sales_excluded(self, lot_id):
        _sell(lot_id)
        assert _repo().search("owner-other").total == 0
