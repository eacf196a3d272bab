import pytest
from starlette.websockets import WebSocketDisconnect

from storefront.config import settings


def _join(ws, order_id: str = "ORD00001") -> dict:
    ws.send_json({"event": "join-order-tracking", "data": order_id})
    return ws.receive_json()


def test_join_then_status_update_is_pushed(client, auth_headers, placed_order):
    with client.websocket_connect("/ws/tracking") as ws:
        assert _join(ws) == {"event": "joined", "data": {"channel": "order-ORD00001"}}

        response = client.patch(
            "/api/v1/orders/admin/ORD00001/status",
            json={"status": "shipped", "tracking_number": "DTDC-778899"},
            headers=auth_headers["admin"],
        )
        assert response.status_code == 200

        pushed = ws.receive_json()

    assert pushed["event"] == "order-status-updated"
    assert pushed["data"]["orderId"] == "ORD00001"
    assert pushed["data"]["status"] == "shipped"
    assert pushed["data"]["trackingNumber"] == "DTDC-778899"
    assert "updatedAt" in pushed["data"]


def test_hash_prefixed_join_shares_the_channel(client, auth_headers, placed_order):
    with client.websocket_connect("/ws/tracking") as ws:
        assert _join(ws, "#ORD00001")["data"] == {"channel": "order-ORD00001"}

        client.patch("/api/v1/orders/ORD00001/cancel", headers=auth_headers["customer_a"])

        pushed = ws.receive_json()

    assert pushed["data"]["status"] == "cancelled"


def test_uuid_join_receives_pushes_for_the_display_channel(
    client, auth_headers, auth_tokens, placed_order, monkeypatch
):
    monkeypatch.setattr(settings, "tracking_subscription_policy", "owner")

    with client.websocket_connect(f"/ws/tracking?token={auth_tokens['customer_a']}") as ws:
        assert _join(ws, placed_order["id"]) == {
            "event": "joined",
            "data": {"channel": "order-ORD00001"},
        }

        client.patch(
            "/api/v1/orders/admin/ORD00001/status",
            json={"status": "shipped"},
            headers=auth_headers["admin"],
        )

        pushed = ws.receive_json()

    assert pushed["event"] == "order-status-updated"
    assert pushed["data"]["orderId"] == "ORD00001"
    assert pushed["data"]["status"] == "shipped"


def test_uuid_leave_removes_the_display_channel(client, auth_headers, placed_order):
    with client.websocket_connect("/ws/tracking") as ws:
        _join(ws)
        ws.send_json({"event": "leave-order-tracking", "data": placed_order["id"]})
        assert ws.receive_json() == {"event": "left", "data": {"channel": "order-ORD00001"}}

        client.patch(
            "/api/v1/orders/admin/ORD00001/status",
            json={"status": "confirmed"},
            headers=auth_headers["admin"],
        )

        ws.send_json({"event": "ping", "data": "after-leave"})
        assert ws.receive_json() == {"event": "pong", "data": "after-leave"}


def test_join_for_unknown_order_is_rejected(client):
    with client.websocket_connect("/ws/tracking") as ws:
        assert _join(ws, "ORD00042") == {"event": "error", "data": {"detail": "Order not found"}}

        live = client.get("/metrics").json()["live_tracking"]

    assert live == {"channels": 0, "connections": 0}


def test_binary_frames_are_handled_like_text(client):
    with client.websocket_connect("/ws/tracking") as ws:
        ws.send_bytes(b'{"event": "ping", "data": 7}')
        pong = ws.receive_json()
        ws.send_bytes(b"\xff\xfe")
        garbage = ws.receive_json()
        ws.send_json({"event": "ping"})
        still_open = ws.receive_json()

    assert pong == {"event": "pong", "data": 7}
    assert garbage["event"] == "error"
    assert isinstance(garbage["data"]["detail"], list)
    assert still_open == {"event": "pong", "data": None}


def test_only_subscribers_receive_updates(client, auth_headers, order_payload):
    for _ in range(2):
        client.post(
            "/api/v1/orders", json=order_payload(quantity=1), headers=auth_headers["customer_a"]
        )

    with client.websocket_connect("/ws/tracking") as watcher, client.websocket_connect(
        "/ws/tracking"
    ) as bystander:
        _join(watcher, "ORD00001")
        _join(bystander, "ORD00002")

        client.patch(
            "/api/v1/orders/admin/ORD00001/status",
            json={"status": "confirmed"},
            headers=auth_headers["admin"],
        )

        assert watcher.receive_json()["data"]["orderId"] == "ORD00001"
        bystander.send_json({"event": "ping", "data": 1})
        assert bystander.receive_json() == {"event": "pong", "data": 1}


def test_leave_stops_updates(client, auth_headers, placed_order):
    with client.websocket_connect("/ws/tracking") as ws:
        _join(ws)
        ws.send_json({"event": "leave-order-tracking", "data": {"orderId": "ORD00001"}})
        assert ws.receive_json() == {"event": "left", "data": {"channel": "order-ORD00001"}}

        client.patch(
            "/api/v1/orders/admin/ORD00001/status",
            json={"status": "confirmed"},
            headers=auth_headers["admin"],
        )

        ws.send_json({"event": "ping"})
        assert ws.receive_json() == {"event": "pong", "data": None}


def test_admin_socket_can_push_status(client, auth_tokens, placed_order):
    with client.websocket_connect("/ws/tracking") as watcher, client.websocket_connect(
        f"/ws/tracking?token={auth_tokens['admin']}"
    ) as admin:
        _join(watcher)
        admin.send_json(
            {
                "event": "admin-status-update",
                "data": {"orderId": "ORD00001", "status": "processing"},
            }
        )

        pushed = watcher.receive_json()

    assert pushed["event"] == "order-status-updated"
    assert pushed["data"]["status"] == "processing"


def test_customer_socket_cannot_push_status(client, auth_tokens, placed_order):
    with client.websocket_connect(f"/ws/tracking?token={auth_tokens['customer_a']}") as ws:
        ws.send_json(
            {
                "event": "admin-status-update",
                "data": {"orderId": "ORD00001", "status": "delivered"},
            }
        )

        assert ws.receive_json() == {"event": "error", "data": {"detail": "Admin role required"}}


def test_invalid_token_closes_socket(client):
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/ws/tracking?token=not-a-token"):
            pass

    assert exc_info.value.code == 1008


def test_malformed_messages_get_error_events(client):
    with client.websocket_connect("/ws/tracking") as ws:
        ws.send_text("not json")
        malformed = ws.receive_json()
        ws.send_json({"event": "subscribe-everything"})
        unknown = ws.receive_json()
        ws.send_json({"event": "join-order-tracking", "data": "   "})
        empty = ws.receive_json()

    assert malformed["event"] == "error"
    assert isinstance(malformed["data"]["detail"], list)
    assert unknown["event"] == "error"
    assert empty == {"event": "error", "data": {"detail": "Order identifier must not be empty"}}


def test_owner_policy_limits_subscriptions(client, auth_tokens, placed_order, monkeypatch):
    monkeypatch.setattr(settings, "tracking_subscription_policy", "owner")

    with client.websocket_connect("/ws/tracking") as anonymous:
        assert _join(anonymous)["data"] == {"detail": "Authentication required to track orders"}

    with client.websocket_connect(f"/ws/tracking?token={auth_tokens['customer_b']}") as other:
        assert _join(other)["data"] == {"detail": "Not allowed to track this order"}
        assert _join(other, "ORD00042")["data"] == {"detail": "Order not found"}

    with client.websocket_connect(f"/ws/tracking?token={auth_tokens['customer_a']}") as owner:
        assert _join(owner)["event"] == "joined"


def test_tracking_metrics_are_recorded(client, auth_headers, placed_order):
    with client.websocket_connect("/ws/tracking") as ws:
        _join(ws)
        client.patch(
            "/api/v1/orders/admin/ORD00001/status",
            json={"status": "confirmed"},
            headers=auth_headers["admin"],
        )
        ws.receive_json()

    counters = client.get("/metrics").json()["counters"]
    assert counters["tracking_connections_total"] == 1
    assert counters["tracking_subscriptions_total"] == 1
    assert counters["tracking_deliveries_total"] == 1


def test_metrics_report_live_subscriptions(client, auth_headers, order_payload):
    for _ in range(2):
        client.post(
            "/api/v1/orders", json=order_payload(quantity=1), headers=auth_headers["customer_a"]
        )

    with client.websocket_connect("/ws/tracking") as ws:
        _join(ws)
        _join(ws, "ORD00002")

        live = client.get("/metrics").json()["live_tracking"]

    assert live == {"channels": 2, "connections": 1}
