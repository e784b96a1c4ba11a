"""Table Order Module URL Configuration"""

from django.urls import path
from . import views

app_name = 'tableorder'

urlpatterns = [
    # Tenant & menu
    path('<str:tenant_ref>/', views.api_tenant, name='tenant'),
    path('<str:tenant_ref>/menu/', views.api_menu, name='menu'),
    path('<str:tenant_ref>/menu/<uuid:dish_id>/availability/', views.api_dish_availability, name='dish_availability'),

    # Role sessions
    path('<str:tenant_ref>/session/', views.api_login, name='login'),

    # Orders
    path('<str:tenant_ref>/orders/', views.orders, name='orders'),
    path('<str:tenant_ref>/orders/stats/', views.api_order_stats, name='order_stats'),
    path('<str:tenant_ref>/orders/<uuid:order_id>/', views.api_get_order, name='order_detail'),
    path('<str:tenant_ref>/orders/<uuid:order_id>/status/', views.api_advance_status, name='advance_status'),
    path('<str:tenant_ref>/orders/<uuid:order_id>/pay/', views.api_mark_paid, name='mark_paid'),
    path('<str:tenant_ref>/orders/<uuid:order_id>/stream/', views.api_order_stream, name='order_stream'),

    # Service calls
    path('<str:tenant_ref>/calls/', views.calls, name='calls'),
    path('<str:tenant_ref>/calls/<uuid:call_id>/resolve/', views.api_resolve_call, name='resolve_call'),

    # Realtime
    path('<str:tenant_ref>/stream/', views.api_stream, name='stream'),
]
