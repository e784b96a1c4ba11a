"""
Table Order Module Views

JSON API for customers (menu, ordering, tracking, service calls) and
staff (kitchen and waiter workflow), plus Server-Sent Event streams.
"""

import json
import logging
import uuid
from datetime import datetime
from functools import wraps

from django.core.serializers.json import DjangoJSONEncoder
from django.http import JsonResponse, StreamingHttpResponse
from django.utils.translation import gettext_lazy as _
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from . import realtime
from .auth import issue_token, role_required, verify_role
from .conf import get_setting
from .exceptions import InvalidInput, TableOrderError
from .forms import DishAvailabilityForm
from .services import MenuService, OrderService, TenantService

logger = logging.getLogger(__name__)


def api_view(view_func):
    """Resolve the URL tenant and turn engine errors into JSON responses."""
    @wraps(view_func)
    def _wrapped(request, tenant_ref, *args, **kwargs):
        try:
            tenant = TenantService.resolve(tenant_ref)
            return view_func(request, tenant, *args, **kwargs)
        except TableOrderError as exc:
            return JsonResponse(exc.as_dict(), status=exc.status_code)
    return _wrapped


def _json_body(request):
    try:
        data = json.loads(request.body or b'{}')
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise InvalidInput(_('Invalid JSON'))
    if not isinstance(data, dict):
        raise InvalidInput(_('Invalid JSON'))
    return data


# =============================================================================
# Tenant & Menu
# =============================================================================

@require_GET
@api_view
def api_tenant(request, tenant):
    return JsonResponse({'success': True, 'tenant': tenant.as_dict()})


@require_GET
@api_view
def api_menu(request, tenant):
    dishes = MenuService.list_menu(tenant.pk)
    return JsonResponse({'success': True, 'dishes': [d.as_dict() for d in dishes]})


@csrf_exempt
@require_POST
@api_view
@role_required()
def api_dish_availability(request, tenant, dish_id):
    data = _json_body(request)
    if 'is_available' not in data:
        raise InvalidInput(_('is_available is required'))
    form = DishAvailabilityForm(data)
    form.is_valid()
    dish = MenuService.set_availability(
        tenant.pk, dish_id, form.cleaned_data.get('is_available', False),
        request.role_session.role,
    )
    return JsonResponse({'success': True, 'dish': dish.as_dict()})


# =============================================================================
# Role sessions
# =============================================================================

@csrf_exempt
@require_POST
@api_view
def api_login(request, tenant):
    data = _json_body(request)
    session = verify_role(tenant, data.get('role'), data.get('password'))
    return JsonResponse({
        'success': True,
        'token': issue_token(session),
        'role': session.role,
        'tenant': tenant.as_dict(),
    })


# =============================================================================
# Orders
# =============================================================================

@csrf_exempt
@require_http_methods(['GET', 'POST'])
def orders(request, tenant_ref):
    if request.method == 'POST':
        return api_place_order(request, tenant_ref)
    return api_list_orders(request, tenant_ref)


@api_view
def api_place_order(request, tenant):
    data = _json_body(request)
    order = OrderService.place_order(
        tenant.pk,
        customer_name=data.get('customer_name'),
        table_number=data.get('table_number'),
        line_items=data.get('items'),
        payment_method=data.get('payment_method'),
    )
    client_total = data.get('total_amount')
    if client_total is not None and client_total != order.total_amount:
        logger.warning("Order %s: ignored client total %r, computed %s",
                       order.order_number, client_total, order.total_amount)
    return JsonResponse({'success': True, 'order': order.as_dict()}, status=201)


@api_view
@role_required()
def api_list_orders(request, tenant):
    orders_list = OrderService.list_orders(
        tenant.pk, request.role_session.role,
        status=request.GET.get('status') or None,
        active_only=request.GET.get('active') in ('1', 'true'),
    )
    return JsonResponse({'success': True, 'orders': [o.as_dict() for o in orders_list]})


@require_GET
@api_view
@role_required()
def api_order_stats(request, tenant):
    date_str = request.GET.get('date')
    date = None
    if date_str:
        try:
            date = datetime.strptime(date_str, '%Y-%m-%d').date()
        except ValueError:
            raise InvalidInput(_('Date must be YYYY-MM-DD'))
    stats = OrderService.get_order_stats(tenant.pk, request.role_session.role, date=date)
    return JsonResponse({'success': True, **stats})


@require_GET
@api_view
def api_get_order(request, tenant, order_id):
    order = OrderService.get_order(tenant.pk, order_id)
    return JsonResponse({'success': True, 'order': order.as_dict()})


@csrf_exempt
@require_POST
@api_view
@role_required()
def api_advance_status(request, tenant, order_id):
    data = _json_body(request)
    order = OrderService.advance_status(
        tenant.pk, order_id, data.get('status'), request.role_session.role,
    )
    return JsonResponse({'success': True, 'order': order.as_dict()})


@csrf_exempt
@require_POST
@api_view
@role_required()
def api_mark_paid(request, tenant, order_id):
    order = OrderService.mark_paid(tenant.pk, order_id, request.role_session.role)
    return JsonResponse({'success': True, 'order': order.as_dict()})


# =============================================================================
# Service calls
# =============================================================================

@csrf_exempt
@require_http_methods(['GET', 'POST'])
def calls(request, tenant_ref):
    if request.method == 'POST':
        return api_request_service(request, tenant_ref)
    return api_list_calls(request, tenant_ref)


@api_view
def api_request_service(request, tenant):
    data = _json_body(request)
    call = OrderService.request_service(
        tenant.pk, data.get('table_number'), data.get('type') or 'HELP',
    )
    return JsonResponse({'success': True, 'message': str(_('Staff notified!')), 'call': call.as_dict()}, status=201)


@api_view
@role_required()
def api_list_calls(request, tenant):
    calls_list = OrderService.list_service_calls(tenant.pk, request.role_session.role)
    return JsonResponse({'success': True, 'calls': [c.as_dict() for c in calls_list]})


@csrf_exempt
@require_POST
@api_view
@role_required()
def api_resolve_call(request, tenant, call_id):
    OrderService.resolve_service(tenant.pk, call_id, request.role_session.role)
    return JsonResponse({'success': True, 'message': str(_('Call resolved.'))})


# =============================================================================
# Realtime streams (Server-Sent Events)
# =============================================================================

def format_event(event):
    data = json.dumps(event.payload, cls=DjangoJSONEncoder)
    return f"id: {event.sequence}\nevent: {event.type}\ndata: {data}\n\n"


class EventStream:
    """
    Iterable body for a StreamingHttpResponse bound to one subscription.

    Closing the response (client gone) unsubscribes, whether or not
    iteration ever started.
    """

    def __init__(self, subscription, accept=None, router=None):
        self.subscription = subscription
        self.accept = accept
        self.router = router or realtime.router

    def __iter__(self):
        subscription = self.subscription
        heartbeat = get_setting('stream_heartbeat_seconds')
        try:
            yield 'retry: 3000\n\n'
            while not subscription.closed or subscription.pending():
                event = subscription.get(timeout=heartbeat)
                if event is None:
                    if subscription.closed:
                        break
                    yield ': keep-alive\n\n'
                    continue
                if self.accept is not None and not self.accept(event):
                    continue
                yield format_event(event)
        finally:
            self.close()

    def close(self):
        self.router.unsubscribe(self.subscription)


def _stream_response(tenant, accept=None):
    subscription = realtime.router.subscribe(tenant.pk, uuid.uuid4().hex)
    response = StreamingHttpResponse(
        EventStream(subscription, accept=accept),
        content_type='text/event-stream',
    )
    response['Cache-Control'] = 'no-cache'
    response['X-Accel-Buffering'] = 'no'
    return response


@require_GET
@api_view
@role_required()
def api_stream(request, tenant):
    """Every lifecycle event of the tenant, for kitchen and waiter screens."""
    return _stream_response(tenant)


@require_GET
@api_view
def api_order_stream(request, tenant, order_id):
    """Customer tracker: updates for a single order only."""
    order = OrderService.get_order(tenant.pk, order_id)
    order_key = str(order.pk)

    def accept(event):
        return event.type == realtime.ORDER_UPDATED and event.payload.get('id') == order_key

    return _stream_response(tenant, accept=accept)
