from intake.models import ConnectionEvent, ConnectionState
from intake.service.events import ConnectionEvents


def _event(status: ConnectionState) -> ConnectionEvent:
    return ConnectionEvent(status=status, timestamp=1)


def test_listeners_receive_events_until_removed():
    events = ConnectionEvents()
    seen = []
    remove = events.subscribe(seen.append)

    events.publish(_event(ConnectionState.CONNECTING))
    remove()
    remove()
    events.publish(_event(ConnectionState.CONNECTED))

    assert [event.status for event in seen] == [ConnectionState.CONNECTING]
    assert events.last.status is ConnectionState.CONNECTED


def test_failing_listener_does_not_block_others():
    events = ConnectionEvents()
    seen = []

    def broken(event):
        raise RuntimeError("render failed")

    events.subscribe(broken)
    events.subscribe(seen.append)
    events.publish(_event(ConnectionState.ERROR))

    assert len(seen) == 1


def test_history_is_bounded():
    events = ConnectionEvents(history_size=2)
    for status in ConnectionState:
        events.publish(_event(status))

    assert len(events.history) == 2
    assert events.last.status is ConnectionState.ERROR
