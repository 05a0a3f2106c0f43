import json
from datetime import datetime

from visitlog.services.activity_hub import ActivityHub, format_sse, stream_events


def test_publish_reaches_every_subscriber():
    hub = ActivityHub(queue_size=5)
    first, second = hub.subscribe(), hub.subscribe()

    assert hub.publish({'type': 'TIME_IN'}) == 2
    assert first.next_event(timeout=0.1) == {'type': 'TIME_IN'}
    assert second.next_event(timeout=0.1) == {'type': 'TIME_IN'}


def test_unsubscribed_listener_gets_nothing():
    hub = ActivityHub(queue_size=5)
    subscription = hub.subscribe()
    hub.unsubscribe(subscription)

    assert hub.publish({'type': 'TIME_OUT'}) == 0
    assert subscription.next_event(timeout=0.01) is None
    assert hub.subscriber_count == 0


def test_full_queue_drops_events_without_blocking():
    hub = ActivityHub(queue_size=1)
    slow = hub.subscribe()

    assert hub.publish({'n': 1}) == 1
    assert hub.publish({'n': 2}) == 0
    assert slow.next_event(timeout=0.1) == {'n': 1}
    assert slow.next_event(timeout=0.01) is None


def test_format_sse_serializes_datetimes():
    frame = format_sse({'type': 'TIME_IN', 'at': datetime(2025, 11, 28, 9, 30)})

    assert frame.startswith('data: ')
    assert frame.endswith('\n\n')
    assert json.loads(frame[len('data: '):]) == {'type': 'TIME_IN', 'at': '2025-11-28T09:30:00'}


def test_stream_yields_events_and_unsubscribes_on_close():
    hub = ActivityHub(queue_size=5)
    stream = stream_events(hub, keepalive_seconds=0.01)

    assert next(stream) == ': connected\n\n'
    assert hub.subscriber_count == 1
    assert next(stream) == ': ping\n\n'

    hub.publish({'type': 'TIME_OUT'})
    assert json.loads(next(stream)[len('data: '):]) == {'type': 'TIME_OUT'}

    stream.close()
    assert hub.subscriber_count == 0
