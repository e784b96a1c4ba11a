"""
Owner notifications

Best-effort push about new orders. A failed or slow notification is
logged and dropped; it never affects the order that triggered it.
"""

import json
import logging
import urllib.request
from concurrent.futures import ThreadPoolExecutor

from django.core.serializers.json import DjangoJSONEncoder
from django.utils.module_loading import import_string

from .conf import get_setting

logger = logging.getLogger(__name__)

# Test outbox used by LocmemBackend
outbox = []

_executor = None


def _get_executor():
    global _executor
    if _executor is None:
        _executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix='tableorder-notify')
    return _executor


class BaseBackend:

    def __init__(self, timeout=None):
        self.timeout = timeout if timeout is not None else get_setting('notification_timeout')

    def send(self, tenant_id, summary):
        raise NotImplementedError


class LoggingBackend(BaseBackend):

    def send(self, tenant_id, summary):
        logger.info("New order for tenant %s: %s", tenant_id, summary['body'])


class LocmemBackend(BaseBackend):

    def send(self, tenant_id, summary):
        outbox.append({'tenant_id': tenant_id, **summary})


class WebhookBackend(BaseBackend):
    """POST the summary as JSON to ``notification_webhook_url``."""

    def __init__(self, timeout=None, url=None):
        super().__init__(timeout)
        self.url = url or get_setting('notification_webhook_url')

    def send(self, tenant_id, summary):
        if not self.url:
            logger.debug("No webhook URL configured, skipping notification")
            return
        body = json.dumps({'tenant_id': tenant_id, **summary}, cls=DjangoJSONEncoder)
        req = urllib.request.Request(
            self.url,
            data=body.encode('utf-8'),
            headers={'Content-Type': 'application/json'},
            method='POST',
        )
        with urllib.request.urlopen(req, timeout=self.timeout) as response:
            response.read()


def get_backend():
    return import_string(get_setting('notification_backend'))()


def build_summary(order):
    items = order.items.all()
    count = sum(item.quantity for item in items)
    return {
        'title': 'New Order Received!',
        'body': f"Table {order.table_number} just ordered {count} items. Total: {order.total_amount}",
        'order_id': str(order.pk),
        'order_number': order.order_number,
        'table_number': order.table_number,
        'item_count': count,
        'total_amount': order.total_amount,
    }


def _deliver(tenant_id, summary):
    try:
        get_backend().send(tenant_id, summary)
    except Exception:
        logger.warning("Notification for tenant %s failed", tenant_id, exc_info=True)


def notify_new_order(order):
    """Fire-and-forget notification to the order's owner."""
    try:
        summary = build_summary(order)
    except Exception:
        logger.warning("Could not build notification for order %s", order.pk, exc_info=True)
        return
    tenant_id = str(order.tenant_id)
    if get_setting('notifications_async'):
        _get_executor().submit(_deliver, tenant_id, summary)
    else:
        _deliver(tenant_id, summary)
