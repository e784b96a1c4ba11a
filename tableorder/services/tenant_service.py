"""
Tenant and Menu Services

Tenant resolution for public entry points, plus read access to the
dish catalog and the chef's sold-out toggle.
"""

import logging
import uuid
from typing import List

from django.core.exceptions import ValidationError
from django.utils.translation import gettext_lazy as _

from ..auth import require_permission
from ..exceptions import InvalidInput, NotFound, UnknownTenant
from ..models import Dish, Tenant
from ..module import ROLE_CHEF, ROLE_OWNER, ROLE_WAITER

logger = logging.getLogger(__name__)


class TenantService:

    @staticmethod
    def resolve(identifier) -> Tenant:
        """Find an active tenant by id or by its public handle."""
        if isinstance(identifier, Tenant):
            identifier = identifier.pk
        try:
            lookup = {'pk': uuid.UUID(str(identifier))}
        except ValueError:
            lookup = {'handle': str(identifier or '')}
        try:
            return Tenant.objects.get(is_active=True, **lookup)
        except Tenant.DoesNotExist:
            raise UnknownTenant()

    get_active = resolve

    @staticmethod
    def create_tenant(handle, display_name, owner_password, chef_password='', waiter_password='') -> Tenant:
        tenant = Tenant(handle=handle, display_name=display_name)
        passwords = (
            (ROLE_OWNER, owner_password),
            (ROLE_CHEF, chef_password),
            (ROLE_WAITER, waiter_password),
        )
        for role, raw in passwords:
            if raw:
                tenant.set_role_password(role, raw)
        try:
            tenant.full_clean()
        except ValidationError as exc:
            raise InvalidInput(_('Invalid restaurant'), errors=exc.message_dict)
        tenant.save()
        logger.info("Tenant %s created", handle)
        return tenant


class MenuService:

    @staticmethod
    def list_menu(tenant_id, include_unavailable=False) -> List[Dish]:
        qs = Dish.objects.filter(tenant_id=tenant_id)
        if not include_unavailable:
            qs = qs.filter(is_available=True)
        return list(qs.order_by('category', 'name'))

    @staticmethod
    def get_dish(tenant_id, dish_id) -> Dish:
        try:
            return Dish.objects.get(pk=dish_id, tenant_id=tenant_id)
        except (Dish.DoesNotExist, ValidationError, ValueError):
            raise NotFound(_('Dish not found'))

    @staticmethod
    def set_availability(tenant_id, dish_id, available, actor_role) -> Dish:
        require_permission(actor_role, 'change_dish_availability')
        tenant = TenantService.get_active(tenant_id)
        dish = MenuService.get_dish(tenant.pk, dish_id)
        dish.is_available = bool(available)
        dish.save(update_fields=['is_available', 'updated_at'])
        logger.info("Dish %s marked %s by %s", dish.name,
                    'available' if dish.is_available else 'sold out', actor_role)
        return dish
