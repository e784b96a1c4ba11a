"""
Role sessions

Staff log in once per tenant with a role password and receive a signed
token. Every mutating engine call receives the resolved
(tenant_id, role) pair explicitly; nothing is kept in ambient state.
"""

import logging
from dataclasses import dataclass
from functools import wraps

from django.core import signing
from django.utils.translation import gettext_lazy as _

from .conf import get_setting
from .exceptions import Forbidden
from .module import STAFF_ROLES, role_has_permission

logger = logging.getLogger(__name__)

TOKEN_SALT = 'tableorder.role-session'


@dataclass(frozen=True)
class RoleSession:
    tenant_id: str
    role: str


def verify_role(tenant, role, password):
    """Check a tenant role password and return the matching RoleSession."""
    if not isinstance(role, str) or not isinstance(password, str):
        raise Forbidden(_('Wrong password'))
    role = role.upper()
    if role not in STAFF_ROLES or not tenant.check_role_password(role, password):
        logger.info("Rejected %s login for tenant %s", role or '-', tenant.handle)
        raise Forbidden(_('Wrong password'))
    return RoleSession(tenant_id=str(tenant.pk), role=role)


def issue_token(session):
    return signing.dumps({'t': session.tenant_id, 'r': session.role}, salt=TOKEN_SALT)


def read_token(token):
    try:
        data = signing.loads(token, salt=TOKEN_SALT, max_age=get_setting('token_max_age'))
    except signing.SignatureExpired:
        raise Forbidden(_('Session expired'))
    except signing.BadSignature:
        raise Forbidden(_('Invalid session'))
    return RoleSession(tenant_id=data['t'], role=data['r'])


def session_from_request(request):
    header = request.headers.get('Authorization', '')
    if header.startswith('Bearer '):
        token = header[len('Bearer '):].strip()
    else:
        # EventSource cannot send headers
        token = request.GET.get('token', '')
    if not token:
        raise Forbidden(_('Not authorized, no token'))
    return read_token(token)


def role_required(*roles):
    """
    Require a staff session for the view's tenant.

    Must sit under ``api_view`` so the tenant is already resolved.
    The session is exposed as ``request.role_session``.
    """
    allowed = roles or tuple(STAFF_ROLES)

    def decorator(view_func):
        @wraps(view_func)
        def _wrapped(request, tenant, *args, **kwargs):
            session = session_from_request(request)
            if session.tenant_id != str(tenant.pk):
                raise Forbidden(_('Session belongs to another restaurant'))
            if session.role not in allowed:
                raise Forbidden()
            request.role_session = session
            return view_func(request, tenant, *args, **kwargs)
        return _wrapped
    return decorator


def require_permission(actor_role, permission):
    if not role_has_permission(actor_role, permission):
        raise Forbidden(
            _('Role %(role)s may not %(action)s') % {
                'role': actor_role or '-', 'action': permission.replace('_', ' '),
            }
        )
