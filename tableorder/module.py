"""
Table Order Module Configuration

QR table ordering for restaurants: orders, service calls and live kitchen/waiter feeds.
"""

ROLE_OWNER = "OWNER"
ROLE_CHEF = "CHEF"
ROLE_WAITER = "WAITER"

STAFF_ROLES = [ROLE_OWNER, ROLE_CHEF, ROLE_WAITER]

# Overridable from the host project with settings.TABLEORDER
SETTINGS = {
    "redis_url": "redis://localhost:6379/0",
    "subscriber_queue_size": 100,
    "stream_heartbeat_seconds": 15,
    "token_max_age": 12 * 60 * 60,
    "notification_backend": "tableorder.notifications.LoggingBackend",
    "notifications_async": True,
    "notification_timeout": 5,
    "notification_webhook_url": None,
}

ROLE_PERMISSIONS = {
    ROLE_OWNER: ["*"],
    ROLE_CHEF: [
        "view_order", "advance_status", "resolve_call", "change_dish_availability",
    ],
    ROLE_WAITER: ["view_order", "mark_paid", "resolve_call"],
}


def role_has_permission(role, permission):
    granted = ROLE_PERMISSIONS.get(role, [])
    return "*" in granted or permission in granted
