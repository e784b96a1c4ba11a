"""
Table Order Module Signals

Lifecycle signals are sent only after the mutation's transaction commits.
The receivers below relay them to the realtime router and the owner
notification sink.
"""

import logging

from django.db import transaction
from django.dispatch import Signal, receiver

from . import notifications, realtime

logger = logging.getLogger(__name__)

# Signals this module emits
order_placed = Signal()  # Provides: order
order_updated = Signal()  # Provides: order
service_requested = Signal()  # Provides: call
service_resolved = Signal()  # Provides: call


@receiver(order_placed)
def publish_new_order(sender, order, **kwargs):
    realtime.router.publish(order.tenant_id, realtime.NEW_ORDER, order.as_dict())


@receiver(order_placed)
def notify_owner(sender, order, **kwargs):
    notifications.notify_new_order(order)


@receiver(order_updated)
def publish_order_updated(sender, order, **kwargs):
    realtime.router.publish(order.tenant_id, realtime.ORDER_UPDATED, order.as_dict())


@receiver(service_requested)
def publish_new_service_call(sender, call, **kwargs):
    realtime.router.publish(call.tenant_id, realtime.NEW_SERVICE_CALL, call.as_dict())


@receiver(service_resolved)
def publish_service_resolved(sender, call, **kwargs):
    realtime.router.publish(call.tenant_id, realtime.SERVICE_RESOLVED, call.as_dict())


def send_after_commit(signal, sender, **kwargs):
    """Send ``signal`` robustly once the current transaction commits."""

    def _send():
        for receiver_func, response in signal.send_robust(sender=sender, **kwargs):
            if isinstance(response, Exception):
                logger.error(
                    "Receiver %s failed for %s",
                    getattr(receiver_func, '__name__', receiver_func), sender.__name__,
                    exc_info=(type(response), response, response.__traceback__),
                )

    transaction.on_commit(_send)
