"""
Table Order Models

Multi-tenant QR table ordering.
Features:
- Tenants (restaurants) with per-role staff passwords
- Dish catalog with a manual "sold out" toggle
- Orders with immutable line items and a server-computed total
- Forward-only kitchen workflow: placed -> cooking -> ready -> served
- Payment tracking independent of the kitchen workflow
- Table service calls (help, bill, water)

All money amounts are integer minor units (e.g. paise or cents).
"""

import uuid

from django.contrib.auth.hashers import check_password, make_password
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from .module import ROLE_CHEF, ROLE_OWNER, ROLE_WAITER

TAKEAWAY = 'Takeaway'


def is_takeaway(table_number):
    return (table_number or '').strip().lower() == TAKEAWAY.lower()


# =============================================================================
# Tenants
# =============================================================================

class Tenant(models.Model):
    """A restaurant account; the unit of data isolation."""

    ROLE_PASSWORD_FIELDS = {
        ROLE_OWNER: 'owner_password',
        ROLE_CHEF: 'chef_password',
        ROLE_WAITER: 'waiter_password',
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    handle = models.SlugField(max_length=50, unique=True, verbose_name=_('Handle'))
    display_name = models.CharField(max_length=200, verbose_name=_('Restaurant Name'))
    is_active = models.BooleanField(default=True, verbose_name=_('Active'))

    # Hashed role passwords, empty means the role cannot log in
    owner_password = models.CharField(max_length=128, blank=True, verbose_name=_('Owner Password'))
    chef_password = models.CharField(max_length=128, blank=True, verbose_name=_('Chef Password'))
    waiter_password = models.CharField(max_length=128, blank=True, verbose_name=_('Waiter Password'))

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'tableorder_tenant'
        verbose_name = _('Tenant')
        verbose_name_plural = _('Tenants')
        ordering = ['display_name']

    def __str__(self):
        return self.display_name

    def set_role_password(self, role, raw_password):
        setattr(self, self.ROLE_PASSWORD_FIELDS[role], make_password(raw_password))

    def check_role_password(self, role, raw_password):
        field = self.ROLE_PASSWORD_FIELDS.get(role)
        if not field or not raw_password:
            return False
        encoded = getattr(self, field)
        if not encoded:
            return False
        return check_password(raw_password, encoded)

    def as_dict(self):
        return {
            'id': str(self.pk),
            'handle': self.handle,
            'display_name': self.display_name,
        }


class TenantBaseModel(models.Model):
    """Base for every record owned by exactly one tenant."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant = models.ForeignKey(
        Tenant, on_delete=models.CASCADE,
        related_name='+', verbose_name=_('Tenant'),
    )
    created_at = models.DateTimeField(default=timezone.now, editable=False)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


# =============================================================================
# Menu
# =============================================================================

class Dish(TenantBaseModel):
    name = models.CharField(max_length=200, verbose_name=_('Name'))
    category = models.CharField(max_length=100, db_index=True, verbose_name=_('Category'))
    description = models.TextField(blank=True, default='')
    price = models.PositiveIntegerField(
        default=0, verbose_name=_('Price'),
        help_text=_('Minor currency units'),
    )
    is_available = models.BooleanField(default=True, verbose_name=_('Available'))
    customizations = models.JSONField(
        default=list, blank=True, verbose_name=_('Customizations'),
        help_text=_('Options like "No Onion" or "Extra Spicy"'),
    )

    class Meta(TenantBaseModel.Meta):
        db_table = 'tableorder_dish'
        verbose_name = _('Dish')
        verbose_name_plural = _('Dishes')
        ordering = ['category', 'name']

    def __str__(self):
        return self.name

    def as_dict(self):
        return {
            'id': str(self.pk),
            'name': self.name,
            'category': self.category,
            'description': self.description,
            'price': self.price,
            'is_available': self.is_available,
            'customizations': list(self.customizations or []),
        }


# =============================================================================
# Orders
# =============================================================================

class Order(TenantBaseModel):
    """A placed food order for a table or takeaway."""

    STATUS_PLACED = 'PLACED'
    STATUS_COOKING = 'COOKING'
    STATUS_READY = 'READY'
    STATUS_SERVED = 'SERVED'

    STATUS_CHOICES = [
        (STATUS_PLACED, _('Placed')),
        (STATUS_COOKING, _('Cooking')),
        (STATUS_READY, _('Ready')),
        (STATUS_SERVED, _('Served')),
    ]

    # Every legal move; anything else (including a no-op) is rejected.
    TRANSITIONS = {
        STATUS_PLACED: (STATUS_COOKING, STATUS_READY),
        STATUS_COOKING: (STATUS_READY,),
        STATUS_READY: (STATUS_SERVED,),
        STATUS_SERVED: (),
    }

    ACTIVE_STATUSES = [STATUS_PLACED, STATUS_COOKING, STATUS_READY]

    PAYMENT_CASH = 'CASH'
    PAYMENT_ONLINE = 'ONLINE'

    PAYMENT_METHOD_CHOICES = [
        (PAYMENT_CASH, _('Cash')),
        (PAYMENT_ONLINE, _('Online')),
    ]

    PAYMENT_PENDING = 'PENDING'
    PAYMENT_PAID = 'PAID'

    PAYMENT_STATUS_CHOICES = [
        (PAYMENT_PENDING, _('Pending')),
        (PAYMENT_PAID, _('Paid')),
    ]

    order_number = models.CharField(max_length=50, db_index=True, verbose_name=_('Order Number'))
    table_number = models.CharField(max_length=20, verbose_name=_('Table'))
    customer_name = models.CharField(max_length=120, verbose_name=_('Customer Name'))

    total_amount = models.PositiveIntegerField(
        default=0, verbose_name=_('Total'),
        help_text=_('Minor currency units, computed when the order is placed'),
    )
    payment_method = models.CharField(
        max_length=10, choices=PAYMENT_METHOD_CHOICES,
        default=PAYMENT_CASH, verbose_name=_('Payment Method'),
    )
    payment_status = models.CharField(
        max_length=10, choices=PAYMENT_STATUS_CHOICES,
        default=PAYMENT_PENDING, verbose_name=_('Payment Status'),
    )
    status = models.CharField(
        max_length=10, choices=STATUS_CHOICES,
        default=STATUS_PLACED, verbose_name=_('Status'),
    )

    # Timing
    cooking_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Cooking Since'))
    ready_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Ready At'))
    served_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Served At'))
    paid_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Paid At'))

    class Meta(TenantBaseModel.Meta):
        db_table = 'tableorder_order'
        verbose_name = _('Order')
        verbose_name_plural = _('Orders')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['tenant', 'status'], name='tableorder_tenant_status_idx'),
            models.Index(fields=['tenant', 'created_at'], name='tableorder_tenant_created_idx'),
        ]

    def __str__(self):
        return f"Order #{self.order_number}"

    # ---- Properties ----

    @property
    def is_takeaway(self):
        return is_takeaway(self.table_number)

    @property
    def is_paid(self):
        return self.payment_status == self.PAYMENT_PAID

    @property
    def item_count(self):
        return sum(item.quantity for item in self.items.all())

    @property
    def prep_time_minutes(self):
        if not self.ready_at:
            return None
        delta = self.ready_at - self.created_at
        return int(delta.total_seconds() / 60)

    # ---- Workflow ----

    @classmethod
    def can_transition(cls, current, requested):
        return requested in cls.TRANSITIONS.get(current, ())

    @classmethod
    def timestamp_field_for(cls, status):
        return {
            cls.STATUS_COOKING: 'cooking_at',
            cls.STATUS_READY: 'ready_at',
            cls.STATUS_SERVED: 'served_at',
        }.get(status)

    # ---- Number generation ----

    @classmethod
    def generate_order_number(cls, tenant_id):
        today = timezone.now()
        prefix = today.strftime('%Y%m%d')
        last = cls.objects.filter(
            tenant_id=tenant_id, order_number__startswith=prefix,
        ).order_by('-order_number').first()
        if last:
            try:
                num = int(last.order_number.split('-')[-1]) + 1
            except (ValueError, IndexError):
                num = 1
        else:
            num = 1
        return f"{prefix}-{num:04d}"

    def as_dict(self):
        return {
            'id': str(self.pk),
            'tenant_id': str(self.tenant_id),
            'order_number': self.order_number,
            'table_number': self.table_number,
            'customer_name': self.customer_name,
            'items': [item.as_dict() for item in self.items.all()],
            'total_amount': self.total_amount,
            'payment_method': self.payment_method,
            'payment_status': self.payment_status,
            'status': self.status,
            'created_at': self.created_at.isoformat(),
            'cooking_at': self.cooking_at.isoformat() if self.cooking_at else None,
            'ready_at': self.ready_at.isoformat() if self.ready_at else None,
            'served_at': self.served_at.isoformat() if self.served_at else None,
            'paid_at': self.paid_at.isoformat() if self.paid_at else None,
        }


class OrderItem(models.Model):
    """Snapshot of one ordered line; never edited after placement."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(
        Order, on_delete=models.CASCADE,
        related_name='items', verbose_name=_('Order'),
    )
    position = models.PositiveIntegerField(default=0)

    name = models.CharField(max_length=200, verbose_name=_('Name'))
    unit_price = models.PositiveIntegerField(default=0, verbose_name=_('Unit Price'))
    quantity = models.PositiveIntegerField(
        default=1, validators=[MinValueValidator(1)],
        verbose_name=_('Quantity'),
    )
    customizations = models.JSONField(default=list, blank=True, verbose_name=_('Customizations'))

    class Meta:
        db_table = 'tableorder_order_item'
        verbose_name = _('Order Item')
        verbose_name_plural = _('Order Items')
        ordering = ['position']

    def __str__(self):
        return f"{self.quantity}x {self.name}"

    @property
    def line_total(self):
        return self.unit_price * self.quantity

    def as_dict(self):
        return {
            'name': self.name,
            'unit_price': self.unit_price,
            'quantity': self.quantity,
            'customizations': list(self.customizations or []),
        }


# =============================================================================
# Service Calls
# =============================================================================

class ServiceCall(TenantBaseModel):
    """An open assistance request from a table; resolving deletes it."""

    TYPE_HELP = 'HELP'
    TYPE_BILL = 'BILL'
    TYPE_WATER = 'WATER'

    TYPE_CHOICES = [
        (TYPE_HELP, _('Help')),
        (TYPE_BILL, _('Bill')),
        (TYPE_WATER, _('Water')),
    ]

    table_number = models.CharField(max_length=20, verbose_name=_('Table'))
    call_type = models.CharField(
        max_length=10, choices=TYPE_CHOICES,
        default=TYPE_HELP, verbose_name=_('Type'),
    )

    class Meta(TenantBaseModel.Meta):
        db_table = 'tableorder_service_call'
        verbose_name = _('Service Call')
        verbose_name_plural = _('Service Calls')
        ordering = ['created_at']

    def __str__(self):
        return f"{self.get_call_type_display()} @ {self.table_number}"

    def as_dict(self):
        return {
            'id': str(self.pk),
            'tenant_id': str(self.tenant_id),
            'table_number': self.table_number,
            'type': self.call_type,
            'created_at': self.created_at.isoformat(),
        }
