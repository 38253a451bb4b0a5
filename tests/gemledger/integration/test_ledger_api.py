"""Integration tests for the GemLedger API endpoints via TestClient."""

from unittest.mock import MagicMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from gemledger.api import audit_router, lot_router, register_ledger_exception_handlers, sale_router
from protean.exceptions import ExpectedVersionError

ADMIN = {"X-Owner-Id": "owner-api", "X-User-Id": "admin-1", "X-User-Role": "admin"}
STAFF = {"X-Owner-Id": "owner-api", "X-User-Id": "staff-1", "X-User-Role": "staff"}
OTHER_TENANT = {"X-Owner-Id": "owner-elsewhere", "X-User-Id": "admin-9", "X-User-Role": "admin"}


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(lot_router)
    app.include_router(sale_router)
    app.include_router(audit_router)
    register_ledger_exception_handlers(app)
    return TestClient(app)


def _register_multi(client, serial_number="MX-API-1"):
    response = client.post(
        "/lots",
        json={
            "serial_number": serial_number,
            "shape_type": "multi",
            "shapes": [
                {"shape_name": "round", "pieces": 10, "weight": 5.0},
                {"shape_name": "oval", "pieces": 4, "weight": 2.0},
            ],
        },
        headers=STAFF,
    )
    assert response.status_code == 201
    return response.json()["inventory_id"]


def _register_single(client, serial_number="RB-API-1", pieces=10, weight=5.0):
    response = client.post(
        "/lots",
        json={"serial_number": serial_number, "shape_type": "single", "pieces": pieces, "weight": weight},
        headers=STAFF,
    )
    assert response.status_code == 201
    return response.json()["inventory_id"]


def _sell(client, lot_id, lines, headers=STAFF, customer=None):
    body = {"inventory_id": lot_id, "sold_shapes": lines}
    if customer:
        body["customer"] = customer
    return client.post("/sales/sell", json=body, headers=headers)


class TestLotAPI:
    def test_register_and_get(self, client):
        lot_id = _register_multi(client)
        response = client.get(f"/lots/{lot_id}", headers=STAFF)
        assert response.status_code == 200
        data = response.json()
        assert data["shape_type"] == "multi"
        assert data["status"] == "in_stock"
        assert data["available_pieces"] == 14
        assert {b["shape_name"] for b in data["balances"]} == {"round", "oval"}

    def test_duplicate_serial_is_400(self, client):
        _register_single(client)
        response = client.post(
            "/lots",
            json={"serial_number": "RB-API-1", "shape_type": "single", "pieces": 1, "weight": 1.0},
            headers=STAFF,
        )
        assert response.status_code == 400
        assert "serial_number" in response.json()["error"]

    def test_other_tenant_gets_404(self, client):
        lot_id = _register_single(client)
        assert client.get(f"/lots/{lot_id}", headers=OTHER_TENANT).status_code == 404

    def test_missing_owner_header_is_422(self, client):
        assert client.get("/lots/anything").status_code == 422

    def test_pending_and_delete(self, client):
        lot_id = _register_single(client)
        response = client.put(f"/lots/{lot_id}/pending", json={"pending": True}, headers=STAFF)
        assert response.status_code == 200
        assert client.get(f"/lots/{lot_id}", headers=STAFF).json()["status"] == "pending"

        assert client.delete(f"/lots/{lot_id}", headers=STAFF).status_code == 200
        assert client.get(f"/lots/{lot_id}", headers=STAFF).status_code == 404


class TestSellAPI:
    def test_sell_returns_sale(self, client):
        lot_id = _register_multi(client)
        response = _sell(
            client,
            lot_id,
            [{"shape": "oval", "pieces": 2, "weight": 1.0, "price_per_carat": 1200}],
            customer={"name": "Asha Traders"},
        )
        assert response.status_code == 201
        sale = response.json()
        assert sale["sale_ref"].startswith("SALE-")
        assert sale["total_pieces"] == 2
        assert sale["total_amount"] == 1200.0
        assert sale["customer"]["name"] == "Asha Traders"
        assert sale["sold_by"] == "staff-1"

    def test_oversell_is_400_with_message(self, client):
        lot_id = _register_multi(client)
        response = _sell(client, lot_id, [{"shape": "oval", "pieces": 5, "weight": 1.0}])
        assert response.status_code == 400
        assert response.json()["error"]["pieces"] == ["Only 4 pieces of oval available, 5 requested"]

    def test_unknown_shape_is_400(self, client):
        lot_id = _register_multi(client)
        response = _sell(client, lot_id, [{"shape": "pear", "pieces": 1, "weight": 0.5}])
        assert response.status_code == 400
        assert "shape" in response.json()["error"]

    def test_sold_out_lot_is_409(self, client):
        lot_id = _register_single(client)
        assert _sell(client, lot_id, [{"pieces": 10, "weight": 5.0}]).status_code == 201
        assert _sell(client, lot_id, [{"pieces": 1, "weight": 0.5}]).status_code == 409

    def test_unknown_lot_is_404(self, client):
        assert _sell(client, "missing-lot", [{"pieces": 1, "weight": 0.5}]).status_code == 404

    def test_viewer_cannot_sell(self, client):
        lot_id = _register_single(client)
        viewer = {**STAFF, "X-User-Role": "viewer"}
        assert _sell(client, lot_id, [{"pieces": 1, "weight": 0.5}], headers=viewer).status_code == 403


class TestConflictAPI:
    def test_stale_sell_is_409_naming_the_lot(self, client):
        lot_id = _register_single(client)
        with patch("gemledger.api.routes.current_domain", new_callable=MagicMock) as domain:
            domain.process.side_effect = ExpectedVersionError("Wrong expected version")
            response = _sell(client, lot_id, [{"pieces": 1, "weight": 0.5}])

        assert response.status_code == 409
        message = response.json()["error"]["version"][0]
        assert f"Lot {lot_id}" in message
        assert "reload and retry" in message

    def test_stale_undo_is_409(self, client):
        with patch("gemledger.api.routes.current_domain", new_callable=MagicMock) as domain:
            domain.process.side_effect = ExpectedVersionError("Wrong expected version")
            response = client.post("/sales/sale-1/undo", headers=ADMIN)

        assert response.status_code == 409
        assert response.json()["error"]["version"][0].startswith("Sale sale-1 or its lot")

    def test_unlabelled_stale_write_is_409(self, client):
        with patch("gemledger.api.routes.current_domain", new_callable=MagicMock) as domain:
            domain.process.side_effect = ExpectedVersionError("Wrong expected version")
            response = client.post(
                "/lots",
                json={"serial_number": "RB-API-9", "shape_type": "single", "pieces": 1, "weight": 0.5},
                headers=STAFF,
            )

        assert response.status_code == 409
        assert "version" in response.json()["error"]

class TestUndoAPI:
    def test_admin_undo_restores_stock(self, client):
        lot_id = _register_multi(client)
        sale_id = _sell(client, lot_id, [{"shape": "oval", "pieces": 2, "weight": 1.0}]).json()["id"]

        response = client.post(f"/sales/{sale_id}/undo", json={"reason": "Returned"}, headers=ADMIN)
        assert response.status_code == 200
        assert response.json()["cancelled"] is True
        assert response.json()["cancel_reason"] == "Returned"

        balances = {b["shape_name"]: b for b in client.get(f"/lots/{lot_id}", headers=STAFF).json()["balances"]}
        assert balances["oval"]["pieces"] == 4

    def test_staff_undo_is_403(self, client):
        lot_id = _register_single(client)
        sale_id = _sell(client, lot_id, [{"pieces": 1, "weight": 0.5}]).json()["id"]
        response = client.post(f"/sales/{sale_id}/undo", json={}, headers=STAFF)
        assert response.status_code == 403
        assert response.json()["error"]["role"] == ["Only admins can undo sales"]

    def test_repeated_undo_is_409(self, client):
        lot_id = _register_single(client)
        sale_id = _sell(client, lot_id, [{"pieces": 1, "weight": 0.5}]).json()["id"]
        assert client.post(f"/sales/{sale_id}/undo", json={}, headers=ADMIN).status_code == 200
        assert client.post(f"/sales/{sale_id}/undo", json={}, headers=ADMIN).status_code == 409

        assert client.get(f"/lots/{lot_id}", headers=STAFF).json()["available_pieces"] == 10


class TestSaleQueriesAPI:
    def test_list_with_meta(self, client):
        lot_id = _register_single(client)
        for _ in range(3):
            _sell(client, lot_id, [{"pieces": 1, "weight": 0.5}])

        response = client.get("/sales", params={"limit": 2}, headers=STAFF)
        assert response.status_code == 200
        data = response.json()
        assert len(data["items"]) == 2
        assert data["meta"] == {"total": 3, "page": 1, "pages": 2, "limit": 2}

    def test_get_sale_scoped_to_tenant(self, client):
        lot_id = _register_single(client)
        sale_id = _sell(client, lot_id, [{"pieces": 1, "weight": 0.5}]).json()["id"]
        assert client.get(f"/sales/{sale_id}", headers=STAFF).status_code == 200
        assert client.get(f"/sales/{sale_id}", headers=OTHER_TENANT).status_code == 404


class TestAuditAPI:
    def test_audit_log_lists_sale_and_undo(self, client):
        lot_id = _register_single(client)
        sale_id = _sell(client, lot_id, [{"pieces": 1, "weight": 0.5}]).json()["id"]
        client.post(f"/sales/{sale_id}/undo", json={}, headers=ADMIN)

        response = client.get("/audit-logs", headers=ADMIN)
        assert response.status_code == 200
        actions = {item["action"] for item in response.json()["items"]}
        assert actions == {"CREATE_SALE", "CANCEL_SALE"}

    def test_filter_by_action(self, client):
        lot_id = _register_single(client)
        _sell(client, lot_id, [{"pieces": 1, "weight": 0.5}])

        response = client.get("/audit-logs", params={"action": "CANCEL_SALE"}, headers=ADMIN)
        assert response.json()["items"] == []
