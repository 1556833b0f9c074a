import json

from app.core.websocket_manager import ConnectionManager, project_topic, user_topic


def test_topic_names():
    assert project_topic("p1") == "project_p1"
    assert user_topic("u1") == "user_u1"


async def test_publish_sends_event_to_every_subscriber(fake_websocket):
    manager = ConnectionManager()
    ws_a, ws_b = fake_websocket(), fake_websocket()
    await manager.connect("project_p1", "a", ws_a)
    await manager.connect("project_p1", "b", ws_b)

    delivered = await manager.publish("project_p1", "bid_received", {"message": "New bid received"})

    assert delivered == 2
    assert ws_a.accepted and ws_b.accepted
    assert json.loads(ws_a.sent[0]) == {"event": "bid_received", "data": {"message": "New bid received"}}
    assert ws_b.sent == ws_a.sent


async def test_publish_without_subscribers_is_noop():
    manager = ConnectionManager()
    assert await manager.publish("project_none", "bid_received", {}) == 0


async def test_failed_connection_is_dropped(fake_websocket):
    manager = ConnectionManager()
    healthy, broken = fake_websocket(), fake_websocket(fail=True)
    await manager.connect("user_u1", "u1", healthy)
    await manager.connect("user_u1", "u1", broken)

    delivered = await manager.publish("user_u1", "notification", {"title": "hi"})

    assert delivered == 1
    assert manager.subscriber_count("user_u1") == 1


async def test_disconnect_removes_empty_topic(fake_websocket):
    manager = ConnectionManager()
    ws = fake_websocket()
    await manager.connect("project_p1", "a", ws)
    manager.disconnect("project_p1", "a", ws)
    manager.disconnect("project_p1", "a", ws)  # 重複斷開

    assert "project_p1" not in manager.active_connections
