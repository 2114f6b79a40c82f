"""
REST and WebSocket end-to-end flows through the FastAPI application.
"""

import pytest
from fastapi.testclient import TestClient

from orderhub.main import create_app

ORDER = {
    "tableId": "T1",
    "items": [{"productId": "P1", "quantity": 2}, {"productId": "P2", "quantity": 1}],
}


@pytest.fixture
def client(sync_engine):
    settings, engine = sync_engine
    app = create_app(settings, engine=engine)
    with TestClient(app) as client:
        yield client


def join(ws, room_type: str, room_id: str) -> dict:
    ws.send_json({"event": "room.join", "data": {"type": room_type, "id": room_id}})
    return ws.receive_json()


class TestOrderEndpoints:

    def test_create_order(self, client):
        response = client.post("/api/orders", json=ORDER)

        assert response.status_code == 201
        data = response.json()
        assert data["subtotal"] == "155000.00"
        assert data["tax"] == "15500.00"
        assert data["total"] == "170500.00"
        assert data["status"] == "pending"
        assert data["table_number"] == "1"
        assert len(data["items"]) == 2

    def test_get_and_list(self, client):
        created = client.post("/api/orders", json=ORDER).json()
        client.post("/api/orders", json={**ORDER, "tableId": "T2"})

        response = client.get(f"/api/orders/{created['id']}")
        assert response.status_code == 200
        assert response.json()["order_number"] == created["order_number"]

        listing = client.get("/api/orders", params={"table_id": "T1"}).json()
        assert listing["total"] == 1
        assert listing["orders"][0]["id"] == created["id"]

        assert client.get("/api/orders", params={"branch_id": "B1"}).json()["total"] == 2
        assert client.get("/api/orders", params={"status": "completed"}).json()["total"] == 0

    def test_list_rejects_unknown_status(self, client):
        response = client.get("/api/orders", params={"status": "delivered"})
        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_unknown_order(self, client):
        response = client.get("/api/orders/nope")
        assert response.status_code == 404
        assert response.json() == {
            "success": False,
            "error": "NOT_FOUND",
            "detail": "Order with ID nope not found",
        }

    def test_placeholder_table(self, client):
        response = client.post("/api/orders", json={**ORDER, "tableId": "TABLE_UUID"})
        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_TABLE"

    def test_unavailable_product(self, client):
        response = client.post(
            "/api/orders",
            json={"tableId": "T1", "items": [{"productId": "P4", "quantity": 1}]},
        )
        assert response.status_code == 409
        assert "Bún Bò Huế" in response.json()["detail"]
        assert client.get("/api/orders").json()["total"] == 0

    def test_malformed_body(self, client):
        response = client.post("/api/orders", json={"tableId": "T1", "items": []})
        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_status_updates(self, client):
        order = client.post("/api/orders", json=ORDER).json()

        response = client.patch(f"/api/orders/{order['id']}/status", json={"status": "confirmed"})
        assert response.status_code == 200
        assert response.json()["status"] == "confirmed"

        item_id = order["items"][0]["id"]
        response = client.patch(
            f"/api/orders/{order['id']}/items/{item_id}/status", json={"status": "preparing"}
        )
        assert response.status_code == 200
        assert response.json()["items"][0]["status"] == "preparing"

        response = client.patch(f"/api/orders/{order['id']}/status", json={"status": "served"})
        assert response.status_code == 409
        assert response.json()["error"] == "INVALID_TRANSITION"

    def test_kitchen_queue(self, client):
        first = client.post("/api/orders", json=ORDER).json()
        second = client.post("/api/orders", json={**ORDER, "tableId": "T2"}).json()
        client.patch(f"/api/orders/{second['id']}/status", json={"status": "cancelled"})

        queue = client.get("/api/kitchen/B1/orders").json()
        assert [o["id"] for o in queue] == [first["id"]]
        assert queue[0]["elapsed_minutes"] == 0
        assert client.get("/api/kitchen/B2/orders").json() == []

    def test_health(self, client):
        data = client.get("/health").json()
        assert data["status"] == "operational"
        assert data["database"] == "healthy"
        assert data["cache_service"] == "mock: healthy"
        assert data["connections"] == 0


class TestRealtimeGateway:

    def test_kitchen_receives_new_order(self, client):
        with client.websocket_connect("/ws") as ws:
            ack = join(ws, "kitchen", "B1")
            assert ack["event"] == "room.joined"
            assert ack["room"] == "kitchen:B1"

            created = client.post("/api/orders", json=ORDER).json()

            frame = ws.receive_json()
            assert frame["event"] == "order.created"
            assert frame["room"] == "kitchen:B1"
            assert frame["data"]["id"] == created["id"]
            assert frame["data"]["total"] == "170500.00"

    def test_table_tracker_follows_status(self, client):
        order = client.post("/api/orders", json=ORDER).json()

        with client.websocket_connect("/ws") as ws:
            join(ws, "table", "T1")

            client.patch(f"/api/orders/{order['id']}/status", json={"status": "confirmed"})
            client.patch(f"/api/orders/{order['id']}/status", json={"status": "cancelled"})

            statuses = [ws.receive_json()["data"]["status"] for _ in range(2)]
            assert statuses == ["confirmed", "cancelled"]

    def test_join_errors_and_ping(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"event": "room.join", "data": {"type": "kitchen"}})
            error = ws.receive_json()
            assert error["event"] == "error"
            assert error["data"]["message"] == "Type and ID are required"

            ws.send_text("not json")
            assert ws.receive_json()["event"] == "error"

            ws.send_json({"event": "ping"})
            assert ws.receive_json()["event"] == "pong"

    def test_binary_frames_get_an_error_and_the_socket_stays_open(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_bytes(b"\x00\x01")
            error = ws.receive_json()
            assert error["event"] == "error"
            assert error["data"]["message"] == "Message must be text JSON"

            ack = join(ws, "kitchen", "B1")
            assert ack["event"] == "room.joined"

    def test_leave_stops_delivery(self, client):
        with client.websocket_connect("/ws") as ws:
            join(ws, "branch", "B1")
            join(ws, "kitchen", "B1")
            ws.send_json({"event": "room.leave", "data": {"type": "branch", "id": "B1"}})
            assert ws.receive_json() == {
                "event": "room.left",
                "room": "branch:B1",
                "data": {"room": "branch:B1"},
            }

            client.post("/api/orders", json=ORDER)

            frame = ws.receive_json()
            assert frame["room"] == "kitchen:B1"

            ws.send_json({"event": "ping"})
            assert ws.receive_json()["event"] == "pong"
