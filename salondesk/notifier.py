"""Real-time event fan-out to connected dashboards.

Dashboards hold a server-sent events stream open on ``/api/events``; domain
code calls :func:`publish` after a write commits. Publishing never blocks: a
subscriber whose buffer is full is dropped.
"""
import json
import logging
import queue
from threading import Lock

from flask import current_app

logger = logging.getLogger(__name__)

BROADCASTER_KEY = 'salondesk.broadcaster'

BOOKING_CREATED = 'booking:created'
APPOINTMENT_UPDATED = 'appointment:updated'
APPOINTMENT_PAID = 'appointment:paid'


class EventBroadcaster:
    def __init__(self, buffer_size=100):
        self.buffer_size = buffer_size
        self._subscribers = []
        self._lock = Lock()

    def subscribe(self):
        subscriber = queue.Queue(maxsize=self.buffer_size)
        with self._lock:
            self._subscribers.append(subscriber)
        logger.info('Dashboard connected (%d listening)', len(self._subscribers))
        return subscriber

    def unsubscribe(self, subscriber):
        with self._lock:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)
        logger.info('Dashboard disconnected (%d listening)', len(self._subscribers))

    @property
    def subscriber_count(self):
        with self._lock:
            return len(self._subscribers)

    def publish(self, event, payload):
        message = (event, payload)
        with self._lock:
            subscribers = list(self._subscribers)
        for subscriber in subscribers:
            try:
                subscriber.put_nowait(message)
            except queue.Full:
                logger.warning('Dropping slow dashboard subscriber')
                self.unsubscribe(subscriber)


def format_sse(event, payload):
    return f'event: {event}\ndata: {json.dumps(payload, default=str)}\n\n'


def stream(broadcaster, subscriber, heartbeat=15):
    """Yield SSE frames for one subscriber until the client goes away."""
    try:
        yield ': connected\n\n'
        while True:
            try:
                event, payload = subscriber.get(timeout=heartbeat)
            except queue.Empty:
                yield ': keep-alive\n\n'
                continue
            yield format_sse(event, payload)
    finally:
        broadcaster.unsubscribe(subscriber)


def init_broadcaster(app):
    broadcaster = EventBroadcaster()
    app.extensions[BROADCASTER_KEY] = broadcaster
    return broadcaster


def get_broadcaster() -> EventBroadcaster:
    return current_app.extensions[BROADCASTER_KEY]


def publish(event, payload):
    try:
        get_broadcaster().publish(event, payload)
    except Exception:
        logger.exception('Failed to publish %s', event)
