from ledger.events import (
    ENTITY_CREATED, ENTITY_REMOVED, STORE_RELOADED,
    Event, EventBus,
)


def test_subscribe_and_publish():
    bus = EventBus()
    seen = []

    def handler(event: Event, payload: dict) -> dict:
        seen.append(event)
        return {"processed": True}

    bus.subscribe(ENTITY_CREATED, handler)
    results = bus.publish(ENTITY_CREATED, {"kind": "category", "id": 1})

    assert results == [{"processed": True}]
    assert seen[0].name == ENTITY_CREATED
    assert seen[0].payload["id"] == 1
    assert seen[0].ts


def test_handlers_called_in_subscription_order():
    bus = EventBus()
    order = []
    bus.subscribe(STORE_RELOADED, lambda e, p: order.append(1) or 1)
    bus.subscribe(STORE_RELOADED, lambda e, p: order.append(2) or 2)

    assert bus.publish(STORE_RELOADED, {}) == [1, 2]
    assert order == [1, 2]


def test_publish_without_subscribers():
    assert EventBus().publish(ENTITY_REMOVED, {"id": 1}) == []


def test_unsubscribe():
    bus = EventBus()
    calls = []

    def handler(event, payload):
        calls.append(payload)

    bus.subscribe(ENTITY_REMOVED, handler)
    bus.publish(ENTITY_REMOVED, {"id": 1})
    bus.unsubscribe(ENTITY_REMOVED, handler)
    bus.unsubscribe(ENTITY_REMOVED, handler)
    bus.publish(ENTITY_REMOVED, {"id": 2})

    assert calls == [{"id": 1}]


def test_event_types_are_isolated():
    bus = EventBus()
    created, removed = [], []
    bus.subscribe(ENTITY_CREATED, lambda e, p: created.append(e.name))
    bus.subscribe(ENTITY_REMOVED, lambda e, p: removed.append(e.name))

    bus.publish(ENTITY_CREATED, {})

    assert created == [ENTITY_CREATED]
    assert removed == []


def test_failing_handler_does_not_stop_others(caplog):
    bus = EventBus()

    def broken(event, payload):
        raise RuntimeError("boom")

    bus.subscribe(ENTITY_CREATED, broken)
    bus.subscribe(ENTITY_CREATED, lambda e, p: 2)

    with caplog.at_level("ERROR", logger="ledger.events"):
        results = bus.publish(ENTITY_CREATED, {"id": 1})

    assert results == [None, 2]
    assert "failed for ENTITY_CREATED" in caplog.text
