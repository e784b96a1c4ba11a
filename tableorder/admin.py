from django.contrib import admin
from .models import (
    Tenant,
    Dish,
    Order,
    OrderItem,
    ServiceCall,
)


@admin.register(Tenant)
class TenantAdmin(admin.ModelAdmin):
    list_display = ['display_name', 'handle', 'is_active', 'created_at']
    list_filter = ['is_active']
    search_fields = ['display_name', 'handle']
    exclude = ['owner_password', 'chef_password', 'waiter_password']


@admin.register(Dish)
class DishAdmin(admin.ModelAdmin):
    list_display = ['name', 'tenant', 'category', 'price', 'is_available']
    list_filter = ['is_available', 'category']
    search_fields = ['name']


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    can_delete = False
    readonly_fields = ['position', 'name', 'unit_price', 'quantity', 'customizations']


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['order_number', 'tenant', 'table_number', 'status', 'payment_status', 'total_amount', 'created_at']
    list_filter = ['status', 'payment_status', 'payment_method', 'created_at']
    search_fields = ['order_number', 'customer_name']
    # Orders change state only through OrderService
    readonly_fields = [
        'tenant', 'order_number', 'table_number', 'customer_name', 'total_amount',
        'payment_method', 'payment_status', 'status',
        'cooking_at', 'ready_at', 'served_at', 'paid_at',
    ]
    inlines = [OrderItemInline]


@admin.register(ServiceCall)
class ServiceCallAdmin(admin.ModelAdmin):
    list_display = ['table_number', 'tenant', 'call_type', 'created_at']
    list_filter = ['call_type']
