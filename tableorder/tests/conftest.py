"""
Pytest fixtures for Table Order module tests.
"""

import fakeredis
import pytest

from tableorder import notifications, realtime
from tableorder.auth import RoleSession, issue_token
from tableorder.models import Dish, Order, ServiceCall
from tableorder.module import ROLE_CHEF, ROLE_OWNER, ROLE_WAITER
from tableorder.services import OrderService, TenantService


@pytest.fixture
def redis_client():
    """In-memory redis, one server per test."""
    return fakeredis.FakeRedis(server=fakeredis.FakeServer())


@pytest.fixture(autouse=True)
def router(monkeypatch, redis_client):
    """Fresh fan-out router per test."""
    fresh = realtime.FanoutRouter(client=redis_client)
    monkeypatch.setattr(realtime, 'router', fresh)
    yield fresh
    fresh.close()


@pytest.fixture(autouse=True)
def outbox():
    """Empty notification outbox per test."""
    notifications.outbox.clear()
    yield notifications.outbox
    notifications.outbox.clear()


@pytest.fixture
def tenant(db):
    """Create a restaurant with all three role passwords."""
    return TenantService.create_tenant(
        handle='spice-garden',
        display_name='Spice Garden',
        owner_password='owner-pass',
        chef_password='chef-pass',
        waiter_password='waiter-pass',
    )


@pytest.fixture
def other_tenant(db):
    """A second, unrelated restaurant."""
    return TenantService.create_tenant(
        handle='blue-lagoon',
        display_name='Blue Lagoon',
        owner_password='lagoon-owner',
        chef_password='lagoon-chef',
        waiter_password='lagoon-waiter',
    )


@pytest.fixture
def line_items():
    """Two dishes, total 2 x 25000 + 1 x 12000 = 62000."""
    return [
        {'name': 'Paneer Tikka', 'unit_price': 25000, 'quantity': 2,
         'customizations': ['Extra Spicy']},
        {'name': 'Garlic Naan', 'unit_price': 12000, 'quantity': 1},
    ]


@pytest.fixture
def dish(tenant):
    return Dish.objects.create(
        tenant=tenant,
        name='Paneer Tikka',
        category='Starters',
        price=25000,
        customizations=['No Onion', 'Extra Spicy'],
    )


@pytest.fixture
def sold_out_dish(tenant):
    return Dish.objects.create(
        tenant=tenant,
        name='Mango Lassi',
        category='Drinks',
        price=9000,
        is_available=False,
    )


@pytest.fixture
def order(tenant, line_items, django_capture_on_commit_callbacks):
    """A freshly placed table order."""
    with django_capture_on_commit_callbacks(execute=True):
        return OrderService.place_order(
            tenant.pk,
            customer_name='Asha',
            table_number='5',
            line_items=line_items,
            payment_method='CASH',
        )


@pytest.fixture
def ready_order(order):
    """Order already through the kitchen."""
    Order.objects.filter(pk=order.pk).update(status=Order.STATUS_READY)
    order.refresh_from_db()
    return order


@pytest.fixture
def other_order(other_tenant, line_items):
    return OrderService.place_order(
        other_tenant.pk,
        customer_name='Ravi',
        table_number='2',
        line_items=line_items,
        payment_method='ONLINE',
    )


@pytest.fixture
def service_call(tenant):
    return ServiceCall.objects.create(
        tenant=tenant,
        table_number='5',
        call_type=ServiceCall.TYPE_WATER,
    )


# ==============================================================================
# AUTHENTICATED CLIENTS
# ==============================================================================

def _token_for(tenant, role):
    return issue_token(RoleSession(tenant_id=str(tenant.pk), role=role))


def _client_with_token(client, token):
    client.defaults['HTTP_AUTHORIZATION'] = f'Bearer {token}'
    return client


@pytest.fixture
def owner_client(client, tenant):
    return _client_with_token(client, _token_for(tenant, ROLE_OWNER))


@pytest.fixture
def chef_client(client, tenant):
    return _client_with_token(client, _token_for(tenant, ROLE_CHEF))


@pytest.fixture
def waiter_client(client, tenant):
    return _client_with_token(client, _token_for(tenant, ROLE_WAITER))


@pytest.fixture
def foreign_chef_client(client, other_tenant):
    """A chef of another restaurant."""
    return _client_with_token(client, _token_for(other_tenant, ROLE_CHEF))
