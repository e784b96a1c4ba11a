from .order_service import OrderService
from .tenant_service import MenuService, TenantService

__all__ = ['OrderService', 'TenantService', 'MenuService']
