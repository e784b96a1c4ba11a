"""
Realtime Fan-out

Publish/subscribe keyed by tenant over redis. Every tenant has one
channel, ``tableorder:tenant:<id>``. Kitchen displays, waiter stations
and customer trackers each hold one Subscription on their tenant's
channel; a listener thread moves messages from redis into the
subscription's bounded inbox. Nothing is persisted: a client that
reconnects re-fetches current orders and calls instead of replaying
events.
"""

import itertools
import json
import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import redis
from django.core.serializers.json import DjangoJSONEncoder
from django.utils.translation import gettext_lazy as _

from .conf import get_setting
from .exceptions import InvalidInput, Transient

logger = logging.getLogger(__name__)

# Event types
NEW_ORDER = 'NewOrder'
ORDER_UPDATED = 'OrderUpdated'
NEW_SERVICE_CALL = 'NewServiceCall'
SERVICE_RESOLVED = 'ServiceResolved'

EVENT_TYPES = (NEW_ORDER, ORDER_UPDATED, NEW_SERVICE_CALL, SERVICE_RESOLVED)

# Seconds a listener waits on redis before re-checking its subscription
LISTEN_INTERVAL = 0.05


def channel_for(tenant_id):
    return f"tableorder:tenant:{tenant_id}"


@dataclass(frozen=True)
class Event:
    tenant_id: str
    type: str
    payload: Dict[str, Any]
    sequence: int


@dataclass(eq=False)
class Subscription:
    """Handle returned by subscribe(); also the subscriber's inbox."""

    tenant_id: str
    connection: Any
    maxsize: int
    id: int = field(default_factory=itertools.count(1).__next__)
    closed: bool = False

    def __post_init__(self):
        self._queue = queue.Queue(maxsize=self.maxsize)

    def offer(self, event):
        """Queue an event without blocking; False when the inbox is full."""
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            return False
        return True

    def get(self, timeout=None) -> Optional[Event]:
        """Next event, or None once the timeout elapses."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def pending(self):
        return self._queue.qsize()


class FanoutRouter:

    def __init__(self, client=None, queue_size=None):
        self._client = client
        self._queue_size = queue_size
        self._lock = threading.Lock()
        self._publish_lock = threading.Lock()
        self._channels = {}
        self._connections = {}

    @property
    def client(self):
        if self._client is None:
            self._client = redis.from_url(get_setting('redis_url'))
        return self._client

    @property
    def queue_size(self):
        if self._queue_size is not None:
            return self._queue_size
        return get_setting('subscriber_queue_size')

    def subscribe(self, tenant_id, connection):
        """
        Register a connection on one tenant's channel.

        A connection belongs to a single tenant: subscribing it again to the
        same tenant returns the existing handle, to another tenant is refused.
        """
        tenant_id = str(tenant_id)
        with self._lock:
            existing = self._connections.get(connection)
            if existing is not None:
                if existing.tenant_id != tenant_id:
                    raise InvalidInput(_('Connection is already subscribed to another restaurant'))
                return existing

            subscription = Subscription(
                tenant_id=tenant_id,
                connection=connection,
                maxsize=self.queue_size,
            )
            try:
                pubsub = self.client.pubsub(ignore_subscribe_messages=True)
                pubsub.subscribe(channel_for(tenant_id))
            except redis.RedisError as exc:
                logger.warning("Could not subscribe to tenant %s: %s", tenant_id, exc)
                raise Transient() from exc

            self._channels.setdefault(tenant_id, {})[subscription.id] = subscription
            self._connections[connection] = subscription

        threading.Thread(
            target=self._listen,
            args=(subscription, pubsub),
            name=f'tableorder-subscriber-{subscription.id}',
            daemon=True,
        ).start()
        logger.debug("Subscriber %s joined tenant %s", subscription.id, tenant_id)
        return subscription

    def _listen(self, subscription, pubsub):
        try:
            while not subscription.closed:
                message = pubsub.get_message(ignore_subscribe_messages=True, timeout=LISTEN_INTERVAL)
                if message is None or message['type'] != 'message':
                    continue
                self._deliver(subscription, message['data'])
        except redis.RedisError as exc:
            logger.warning("Subscriber %s lost its redis connection: %s", subscription.id, exc)
            self.unsubscribe(subscription)
        finally:
            pubsub.close()

    def _deliver(self, subscription, data):
        if subscription.closed:
            return
        message = json.loads(data)
        event = Event(
            tenant_id=subscription.tenant_id,
            type=message['type'],
            payload=message['payload'],
            sequence=message['sequence'],
        )
        if not subscription.offer(event):
            logger.warning(
                "Dropping saturated subscriber %s on tenant %s",
                subscription.id, subscription.tenant_id,
            )
            self.unsubscribe(subscription)

    def unsubscribe(self, subscription):
        with self._lock:
            subscription.closed = True
            channel = self._channels.get(subscription.tenant_id)
            if channel is not None:
                channel.pop(subscription.id, None)
                if not channel:
                    del self._channels[subscription.tenant_id]
            if self._connections.get(subscription.connection) is subscription:
                del self._connections[subscription.connection]

    def publish(self, tenant_id, event_type, payload):
        """
        Send an event to every subscriber of the tenant.

        Returns the number of redis subscribers the message reached. Slow
        subscribers are dropped by their own listener; the publisher never
        waits on them.
        """
        if event_type not in EVENT_TYPES:
            raise ValueError(f"Unknown event type {event_type!r}")
        channel = channel_for(tenant_id)

        # Sequence and publish stay paired so local publishers never interleave
        with self._publish_lock:
            try:
                sequence = self.client.incr(f"{channel}:sequence")
                message = json.dumps(
                    {'type': event_type, 'payload': payload, 'sequence': sequence},
                    cls=DjangoJSONEncoder,
                )
                receivers = self.client.publish(channel, message)
            except redis.RedisError as exc:
                logger.warning("Could not publish %s to tenant %s: %s", event_type, tenant_id, exc)
                raise Transient() from exc

        logger.debug("Published %s #%s to %s subscriber(s) of tenant %s",
                     event_type, sequence, receivers, tenant_id)
        return receivers

    def subscriber_count(self, tenant_id):
        with self._lock:
            return len(self._channels.get(str(tenant_id), {}))

    def close(self):
        """Unsubscribe everyone, e.g. on shutdown."""
        with self._lock:
            subscriptions = list(self._connections.values())
        for subscription in subscriptions:
            self.unsubscribe(subscription)


router = FanoutRouter()
