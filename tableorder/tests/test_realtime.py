"""
Unit tests for the realtime fan-out router.
"""

import json
import threading
import time
import uuid

import fakeredis
import pytest

from tableorder import realtime
from tableorder.exceptions import InvalidInput, Transient
from tableorder.realtime import FanoutRouter, channel_for


def receive(subscription, count, timeout=2.0):
    """Wait for ``count`` events; fewer come back if the timeout elapses."""
    events = []
    deadline = time.monotonic() + timeout
    while len(events) < count:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            break
        event = subscription.get(timeout=remaining)
        if event is not None:
            events.append(event)
    return events


def wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            return False
        time.sleep(0.01)
    return True


@pytest.fixture
def make_router(redis_client):
    routers = []

    def factory(queue_size=5):
        router = FanoutRouter(client=redis_client, queue_size=queue_size)
        routers.append(router)
        return router

    yield factory
    for router in routers:
        router.close()


# ==============================================================================
# SUBSCRIBE TESTS
# ==============================================================================

class TestSubscribe:
    """Tests for subscribe and unsubscribe."""

    def test_subscribe(self, make_router):
        router = make_router()
        subscription = router.subscribe('t1', 'conn-1')

        assert subscription.tenant_id == 't1'
        assert subscription.closed is False
        assert router.subscriber_count('t1') == 1

    def test_same_tenant_returns_existing_handle(self, make_router):
        """Test subscribing twice on one tenant is idempotent."""
        router = make_router()
        first = router.subscribe('t1', 'conn-1')
        second = router.subscribe('t1', 'conn-1')

        assert first is second
        assert router.subscriber_count('t1') == 1

    def test_connection_bound_to_one_tenant(self, make_router):
        """Test a connection cannot join a second tenant."""
        router = make_router()
        router.subscribe('t1', 'conn-1')

        with pytest.raises(InvalidInput):
            router.subscribe('t2', 'conn-1')
        assert router.subscriber_count('t2') == 0

    def test_tenant_ids_normalised(self, make_router):
        tenant_id = uuid.uuid4()
        router = make_router()
        router.subscribe(tenant_id, 'conn-1')
        assert router.subscriber_count(str(tenant_id)) == 1

    def test_unsubscribe(self, make_router):
        router = make_router()
        subscription = router.subscribe('t1', 'conn-1')
        router.unsubscribe(subscription)

        assert subscription.closed is True
        assert router.subscriber_count('t1') == 0

        router.publish('t1', realtime.NEW_ORDER, {})
        assert subscription.get(timeout=0.2) is None

    def test_unsubscribe_twice(self, make_router):
        """Test unsubscribing an already closed handle is harmless."""
        router = make_router()
        subscription = router.subscribe('t1', 'conn-1')
        router.unsubscribe(subscription)
        router.unsubscribe(subscription)
        assert router.subscriber_count('t1') == 0

    def test_resubscribe_after_unsubscribe(self, make_router):
        """Test a connection may join another tenant once it left."""
        router = make_router()
        first = router.subscribe('t1', 'conn-1')
        router.unsubscribe(first)

        second = router.subscribe('t2', 'conn-1')
        assert second is not first
        assert second.tenant_id == 't2'

    def test_default_queue_size_from_settings(self, redis_client):
        """Test the inbox bound comes from TABLEORDER settings."""
        router = FanoutRouter(client=redis_client)
        assert router.queue_size == 10

    def test_redis_unavailable(self):
        server = fakeredis.FakeServer()
        server.connected = False
        router = FanoutRouter(client=fakeredis.FakeRedis(server=server), queue_size=5)

        with pytest.raises(Transient):
            router.subscribe('t1', 'conn-1')
        assert router.subscriber_count('t1') == 0


# ==============================================================================
# PUBLISH TESTS
# ==============================================================================

class TestPublish:
    """Tests for publish."""

    def test_message_on_tenant_channel(self, make_router, redis_client):
        """Test events go out as JSON on tableorder:tenant:<id>."""
        listener = redis_client.pubsub(ignore_subscribe_messages=True)
        listener.subscribe('tableorder:tenant:t1')

        assert make_router().publish('t1', realtime.NEW_ORDER, {'id': 'o1'}) == 1

        message = None
        deadline = time.monotonic() + 2
        while message is None and time.monotonic() < deadline:
            message = listener.get_message(timeout=0.1)
        listener.close()

        assert message['channel'] == b'tableorder:tenant:t1'
        assert json.loads(message['data']) == {
            'type': realtime.NEW_ORDER, 'payload': {'id': 'o1'}, 'sequence': 1,
        }

    def test_channel_for(self):
        assert channel_for('t1') == 'tableorder:tenant:t1'

    def test_unknown_event_type(self, make_router):
        with pytest.raises(ValueError):
            make_router().publish('t1', 'OrderDeleted', {})

    def test_tenant_isolation(self, make_router):
        """Test events never cross tenants."""
        router = make_router()
        mine = router.subscribe('t1', 'kitchen-1')
        theirs = router.subscribe('t2', 'kitchen-2')

        delivered = router.publish('t1', realtime.NEW_ORDER, {'id': 'o1'})

        assert delivered == 1
        assert [e.payload for e in receive(mine, 1)] == [{'id': 'o1'}]
        assert theirs.get(timeout=0.2) is None

    def test_every_subscriber_receives(self, make_router):
        router = make_router()
        subscriptions = [router.subscribe('t1', f'conn-{n}') for n in range(3)]

        assert router.publish('t1', realtime.NEW_SERVICE_CALL, {'id': 'c1'}) == 3
        for subscription in subscriptions:
            assert [e.type for e in receive(subscription, 1)] == [realtime.NEW_SERVICE_CALL]

    def test_no_subscribers(self, make_router):
        assert make_router().publish('t1', realtime.NEW_ORDER, {}) == 0

    def test_fifo_per_connection(self, make_router):
        """Test events arrive in publish order."""
        router = make_router()
        subscription = router.subscribe('t1', 'conn-1')

        router.publish('t1', realtime.NEW_ORDER, {'n': 1})
        router.publish('t1', realtime.ORDER_UPDATED, {'n': 2})
        router.publish('t1', realtime.ORDER_UPDATED, {'n': 3})

        events = receive(subscription, 3)
        assert [e.payload['n'] for e in events] == [1, 2, 3]
        assert [e.sequence for e in events] == [1, 2, 3]
        assert events[0].tenant_id == 't1'

    def test_sequence_per_tenant(self, make_router):
        router = make_router()
        a = router.subscribe('t1', 'a')
        b = router.subscribe('t2', 'b')

        router.publish('t1', realtime.NEW_ORDER, {})
        router.publish('t1', realtime.NEW_ORDER, {})
        router.publish('t2', realtime.NEW_ORDER, {})

        assert [e.sequence for e in receive(a, 2)] == [1, 2]
        assert [e.sequence for e in receive(b, 1)] == [1]

    def test_saturated_subscriber_dropped(self, make_router):
        """Test a slow subscriber is disconnected instead of blocking."""
        router = make_router(queue_size=2)
        slow = router.subscribe('t1', 'slow')
        fast = router.subscribe('t1', 'fast')

        for n in (1, 2, 3):
            router.publish('t1', realtime.NEW_ORDER, {'n': n})
            assert [e.payload['n'] for e in receive(fast, 1)] == [n]

        assert wait_for(lambda: slow.closed)
        assert router.subscriber_count('t1') == 1
        assert fast.closed is False
        # Already queued events stay readable
        assert [e.payload['n'] for e in receive(slow, 2)] == [1, 2]
        assert slow.get(timeout=0.1) is None

    def test_redis_unavailable(self):
        server = fakeredis.FakeServer()
        router = FanoutRouter(client=fakeredis.FakeRedis(server=server), queue_size=5)
        server.connected = False

        with pytest.raises(Transient):
            router.publish('t1', realtime.NEW_ORDER, {})

    def test_concurrent_publishers_keep_order(self, make_router):
        """Test every subscriber sees one total order under concurrency."""
        router = make_router(queue_size=1000)
        first = router.subscribe('t1', 'a')
        second = router.subscribe('t1', 'b')

        def publish_many(prefix):
            for n in range(100):
                router.publish('t1', realtime.ORDER_UPDATED, {'id': f'{prefix}-{n}'})

        threads = [threading.Thread(target=publish_many, args=(p,)) for p in 'xyz']
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        seen_first = [e.payload['id'] for e in receive(first, 300, timeout=5)]
        seen_second = [e.payload['id'] for e in receive(second, 300, timeout=5)]
        assert len(seen_first) == 300
        assert seen_first == seen_second
        for prefix in 'xyz':
            own = [i for i in seen_first if i.startswith(prefix)]
            assert own == [f'{prefix}-{n}' for n in range(100)]


class TestSubscription:

    def test_get_times_out(self, make_router):
        subscription = make_router(queue_size=1).subscribe('t1', 'c')
        assert subscription.get(timeout=0.01) is None

    def test_pending(self, make_router):
        router = make_router(queue_size=3)
        subscription = router.subscribe('t1', 'c')
        router.publish('t1', realtime.NEW_ORDER, {})
        assert wait_for(lambda: subscription.pending() == 1)

    def test_close_unsubscribes_everyone(self, make_router):
        router = make_router()
        subscriptions = [router.subscribe('t1', 'a'), router.subscribe('t2', 'b')]

        router.close()

        assert all(s.closed for s in subscriptions)
        assert router.subscriber_count('t1') == 0
        assert router.subscriber_count('t2') == 0
