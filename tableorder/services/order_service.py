"""
Order Service

The order lifecycle engine: the only place orders and service calls are
created or change state. Every query is scoped to one tenant.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from django.core.exceptions import ValidationError
from django.db import InterfaceError, OperationalError, transaction
from django.db.models import Count, Sum
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from ..auth import require_permission
from ..exceptions import IllegalTransition, InvalidInput, NotFound, Transient
from ..forms import LineItemForm, OrderPlacementForm, ServiceCallForm
from ..models import Order, OrderItem, ServiceCall
from ..signals import (
    order_placed, order_updated, send_after_commit,
    service_requested, service_resolved,
)
from .tenant_service import TenantService

logger = logging.getLogger(__name__)


@contextmanager
def storage_errors():
    """Re-raise database connectivity failures as Transient."""
    try:
        yield
    except (OperationalError, InterfaceError) as exc:
        logger.warning("Storage failure: %s", exc)
        raise Transient() from exc


def _form_errors(form):
    return {field: [e['message'] for e in errors] for field, errors in form.errors.get_json_data().items()}


def _as_list(value):
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    return value


class OrderService:
    """Service for the order and service-call lifecycle."""

    # ---- Placement ----

    @staticmethod
    def clean_line_items(line_items) -> List[Dict[str, Any]]:
        if not line_items or isinstance(line_items, (str, dict)):
            raise InvalidInput(_('At least one item is required'))

        cleaned = []
        for index, item in enumerate(line_items):
            if not isinstance(item, dict):
                raise InvalidInput(_('Item %(index)s is malformed') % {'index': index})
            form = LineItemForm({
                'name': item.get('name'),
                'unit_price': item.get('unit_price'),
                'quantity': item.get('quantity'),
                'customizations': _as_list(item.get('customizations')),
            })
            if not form.is_valid():
                raise InvalidInput(
                    _('Item %(index)s is invalid') % {'index': index},
                    errors={'items': {str(index): _form_errors(form)}},
                )
            cleaned.append(form.cleaned_data)
        return cleaned

    @staticmethod
    def compute_total(line_items) -> int:
        return sum(item['unit_price'] * item['quantity'] for item in line_items)

    @staticmethod
    def place_order(
        tenant_id,
        customer_name: str,
        table_number: str,
        line_items: List[Dict],
        payment_method: str,
    ) -> Order:
        """
        Create an order in PLACED / PENDING.

        The total is always computed here from the line items; callers never
        supply it. NewOrder is published and the owner notified after commit.
        """
        tenant = TenantService.get_active(tenant_id)

        form = OrderPlacementForm({
            'customer_name': customer_name,
            'table_number': table_number,
            'payment_method': payment_method,
        })
        if not form.is_valid():
            raise InvalidInput(_('Invalid order'), errors=_form_errors(form))
        items = OrderService.clean_line_items(line_items)

        with storage_errors(), transaction.atomic():
            order = Order.objects.create(
                tenant=tenant,
                order_number=Order.generate_order_number(tenant.pk),
                customer_name=form.cleaned_data['customer_name'],
                table_number=form.cleaned_data['table_number'],
                payment_method=form.cleaned_data['payment_method'],
                total_amount=OrderService.compute_total(items),
            )
            OrderItem.objects.bulk_create([
                OrderItem(
                    order=order,
                    position=position,
                    name=item['name'],
                    unit_price=item['unit_price'],
                    quantity=item['quantity'],
                    customizations=item['customizations'],
                )
                for position, item in enumerate(items)
            ])
            send_after_commit(order_placed, Order, order=order)

        logger.info("Order %s placed for tenant %s (table %s, total %s)",
                    order.order_number, tenant.handle, order.table_number, order.total_amount)
        return order

    # ---- Workflow ----

    @staticmethod
    def _get_order(tenant_id, order_id) -> Order:
        try:
            return Order.objects.get(pk=order_id, tenant_id=tenant_id)
        except (Order.DoesNotExist, ValidationError, ValueError):
            raise NotFound(_('Order not found'))

    @staticmethod
    def advance_status(tenant_id, order_id, requested_status: str, actor_role: str) -> Order:
        """
        Move an order one step forward through the kitchen workflow.

        The write is a compare-and-set on the status that was read, so of two
        simultaneous identical requests exactly one wins and the other gets
        IllegalTransition with the status the winner left behind.
        """
        require_permission(actor_role, 'advance_status')
        if requested_status is None:
            requested_status = ''
        if not isinstance(requested_status, str):
            raise InvalidInput(_('Status must be text'), errors={'status': [_('Unknown status')]})
        requested_status = requested_status.upper()
        tenant = TenantService.get_active(tenant_id)

        with storage_errors(), transaction.atomic():
            order = OrderService._get_order(tenant.pk, order_id)
            current = order.status
            if not Order.can_transition(current, requested_status):
                raise IllegalTransition(
                    _('Cannot move order from %(current)s to %(requested)s') % {
                        'current': current, 'requested': requested_status or '-',
                    },
                    current_status=current,
                    requested_status=requested_status,
                )

            now = timezone.now()
            changes = {'status': requested_status, 'updated_at': now}
            timestamp_field = Order.timestamp_field_for(requested_status)
            if timestamp_field:
                changes[timestamp_field] = now

            updated = Order.objects.filter(
                pk=order.pk, tenant_id=tenant.pk, status=current,
            ).update(**changes)
            if not updated:
                actual = Order.objects.filter(pk=order.pk).values_list('status', flat=True).first()
                raise IllegalTransition(
                    _('Order changed while updating'),
                    current_status=actual,
                    requested_status=requested_status,
                )

            order.refresh_from_db()
            send_after_commit(order_updated, Order, order=order)

        logger.info("Order %s: %s -> %s by %s", order.order_number, current, requested_status, actor_role)
        return order

    @staticmethod
    def mark_paid(tenant_id, order_id, actor_role: str) -> Order:
        """
        Record payment. A READY order is closed as SERVED in the same step;
        earlier statuses are left for the kitchen. Paying twice is a no-op.
        """
        require_permission(actor_role, 'mark_paid')
        tenant = TenantService.get_active(tenant_id)

        with storage_errors(), transaction.atomic():
            order = OrderService._get_order(tenant.pk, order_id)
            now = timezone.now()

            paid = Order.objects.filter(
                pk=order.pk, tenant_id=tenant.pk, payment_status=Order.PAYMENT_PENDING,
            ).update(payment_status=Order.PAYMENT_PAID, paid_at=now, updated_at=now)
            if not paid:
                order.refresh_from_db()
                logger.debug("Order %s already paid", order.order_number)
                return order

            Order.objects.filter(
                pk=order.pk, status=Order.STATUS_READY,
            ).update(status=Order.STATUS_SERVED, served_at=now, updated_at=now)

            order.refresh_from_db()
            send_after_commit(order_updated, Order, order=order)

        logger.info("Order %s paid (%s) by %s, status %s",
                    order.order_number, order.payment_method, actor_role, order.status)
        return order

    # ---- Service calls ----

    @staticmethod
    def request_service(tenant_id, table_number: str, call_type: str) -> ServiceCall:
        tenant = TenantService.get_active(tenant_id)

        form = ServiceCallForm({
            'table_number': table_number,
            'call_type': call_type,
        })
        if not form.is_valid():
            raise InvalidInput(_('Invalid service request'), errors=_form_errors(form))

        with storage_errors(), transaction.atomic():
            call = ServiceCall.objects.create(
                tenant=tenant,
                table_number=form.cleaned_data['table_number'],
                call_type=form.cleaned_data['call_type'],
            )
            send_after_commit(service_requested, ServiceCall, call=call)

        logger.info("Table %s called for %s at tenant %s", call.table_number, call.call_type, tenant.handle)
        return call

    @staticmethod
    def resolve_service(tenant_id, call_id, actor_role: str) -> None:
        """Delete an open call. Already resolved or unknown calls are ignored."""
        require_permission(actor_role, 'resolve_call')
        tenant = TenantService.get_active(tenant_id)

        with storage_errors(), transaction.atomic():
            try:
                queryset = ServiceCall.objects.filter(pk=call_id, tenant_id=tenant.pk)
                call = queryset.first()
            except (ValidationError, ValueError):
                return
            if call is None:
                return
            deleted, _rows = queryset.delete()
            if not deleted:
                return
            send_after_commit(service_resolved, ServiceCall, call=call)

        logger.info("Call %s at table %s resolved by %s", call.call_type, call.table_number, actor_role)

    # ---- Queries ----

    @staticmethod
    def get_order(tenant_id, order_id) -> Order:
        """Public tracking lookup."""
        with storage_errors():
            return OrderService._get_order(tenant_id, order_id)

    @staticmethod
    def list_orders(tenant_id, actor_role: str, status: Optional[str] = None,
                    active_only: bool = False) -> List[Order]:
        require_permission(actor_role, 'view_order')
        qs = Order.objects.filter(tenant_id=tenant_id).prefetch_related('items')
        if status:
            if not isinstance(status, str):
                raise InvalidInput(_('Unknown status'))
            qs = qs.filter(status=status.upper())
        elif active_only:
            qs = qs.filter(status__in=Order.ACTIVE_STATUSES)
        with storage_errors():
            return list(qs.order_by('-created_at'))

    @staticmethod
    def list_service_calls(tenant_id, actor_role: str) -> List[ServiceCall]:
        require_permission(actor_role, 'view_order')
        with storage_errors():
            return list(ServiceCall.objects.filter(tenant_id=tenant_id).order_by('created_at'))

    @staticmethod
    def get_order_stats(tenant_id, actor_role: str, date=None) -> Dict[str, Any]:
        """Get order statistics for a date."""
        require_permission(actor_role, 'view_stats')

        if date is None:
            date = timezone.localdate()

        orders = Order.objects.filter(tenant_id=tenant_id, created_at__date=date)

        with storage_errors():
            total = orders.count()
            status_counts = orders.values('status').annotate(count=Count('id'))
            by_status = {row['status']: row['count'] for row in status_counts}
            paid = orders.filter(payment_status=Order.PAYMENT_PAID)
            revenue = paid.aggregate(total=Sum('total_amount'))['total'] or 0
            method_totals = paid.values('payment_method').annotate(total=Sum('total_amount'))
            by_method = {row['payment_method']: row['total'] for row in method_totals}
            paid_count = paid.count()

            avg_prep = None
            timed = list(orders.filter(ready_at__isnull=False).values_list('created_at', 'ready_at'))
            if timed:
                total_seconds = sum((ready - created).total_seconds() for created, ready in timed)
                avg_prep = int(total_seconds / len(timed) / 60)

        return {
            'date': date.isoformat(),
            'total_orders': total,
            'by_status': {status: by_status.get(status, 0) for status, _label in Order.STATUS_CHOICES},
            'paid_orders': paid_count,
            'revenue': revenue,
            'revenue_by_method': {
                method: by_method.get(method, 0) for method, _label in Order.PAYMENT_METHOD_CHOICES
            },
            'avg_prep_time_minutes': avg_prep,
        }
