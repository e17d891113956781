import threading
from uuid import uuid4

from anonyworks.services.connection_broker import ConnectionBroker, NEW_MESSAGE

from conftest import FakeConnection


def test_broadcast_reaches_every_viewer_of_the_pit_once():
    broker = ConnectionBroker()
    pit = uuid4()
    a, b = FakeConnection(), FakeConnection()
    broker.join(a, pit)
    broker.join(b, pit)

    delivered = broker.broadcast(pit, {"id": "m1"})

    assert delivered == 2
    assert a.sent == [{"type": NEW_MESSAGE, "message": {"id": "m1"}}]
    assert b.sent == a.sent


def test_broadcast_is_scoped_to_the_pit():
    broker = ConnectionBroker()
    watching, elsewhere, idle = FakeConnection(), FakeConnection(), FakeConnection()
    pit = uuid4()
    broker.join(watching, pit)
    broker.join(elsewhere, uuid4())

    broker.broadcast(pit, {"id": "m1"})

    assert len(watching.sent) == 1
    assert elsewhere.sent == []
    assert idle.sent == []


def test_pit_ids_are_matched_by_string_form():
    broker = ConnectionBroker()
    pit = uuid4()
    conn = FakeConnection()
    broker.join(conn, str(pit))

    assert broker.broadcast(pit, {"id": "m1"}) == 1


def test_leave_stops_delivery_and_drops_empty_entry():
    broker = ConnectionBroker()
    pit = uuid4()
    conn = FakeConnection()
    broker.join(conn, pit)

    assert broker.leave(conn) == str(pit)
    assert broker.broadcast(pit, {"id": "m1"}) == 0
    assert conn.sent == []
    assert broker.active_pits() == set()


def test_leave_keeps_other_viewers():
    broker = ConnectionBroker()
    pit = uuid4()
    stay, go = FakeConnection(), FakeConnection()
    broker.join(stay, pit)
    broker.join(go, pit)

    broker.leave(go)
    broker.broadcast(pit, {"id": "m1"})

    assert len(stay.sent) == 1
    assert go.sent == []
    assert broker.subscriber_count(pit) == 1


def test_leave_unknown_connection_is_noop():
    broker = ConnectionBroker()
    assert broker.leave(FakeConnection()) is None


def test_rejoin_with_other_pit_moves_connection():
    broker = ConnectionBroker()
    first, second = uuid4(), uuid4()
    conn = FakeConnection()
    broker.join(conn, first)
    broker.join(conn, second)

    assert broker.pit_of(conn) == str(second)
    assert broker.subscriber_count(first) == 0
    assert str(first) not in broker.active_pits()
    broker.broadcast(first, {"id": "old"})
    broker.broadcast(second, {"id": "new"})
    assert conn.sent == [{"type": NEW_MESSAGE, "message": {"id": "new"}}]


def test_rejoin_same_pit_does_not_duplicate():
    broker = ConnectionBroker()
    pit = uuid4()
    conn = FakeConnection()
    broker.join(conn, pit)
    broker.join(conn, pit)

    assert broker.broadcast(pit, {"id": "m1"}) == 1
    assert len(conn.sent) == 1


def test_closed_and_failing_connections_are_skipped():
    broker = ConnectionBroker()
    pit = uuid4()
    closed, broken, healthy = FakeConnection(is_open=False), FakeConnection(fail=True), FakeConnection()
    for conn in (closed, broken, healthy):
        broker.join(conn, pit)

    assert broker.broadcast(pit, {"id": "m1"}) == 1
    assert closed.sent == []
    assert len(healthy.sent) == 1


def test_broadcast_without_viewers_is_harmless():
    assert ConnectionBroker().broadcast(uuid4(), {"id": "m1"}) == 0


def test_concurrent_join_leave_and_broadcast():
    broker = ConnectionBroker()
    pit = uuid4()
    steady = FakeConnection()
    broker.join(steady, pit)
    errors = []

    def churn():
        try:
            for _ in range(200):
                c = FakeConnection()
                broker.join(c, pit)
                broker.leave(c)
        except Exception as e:  # pragma: no cover
            errors.append(e)

    threads = [threading.Thread(target=churn) for _ in range(4)]
    for t in threads:
        t.start()
    for i in range(200):
        broker.broadcast(pit, {"id": i})
    for t in threads:
        t.join()

    assert errors == []
    assert len(steady.sent) == 200
    assert broker.subscriber_count(pit) == 1
