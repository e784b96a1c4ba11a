"""
Table Order Exceptions

Every failure the lifecycle engine reports is one of these. Views map
``status_code`` and ``code`` straight into the JSON error response.
"""

from django.utils.translation import gettext_lazy as _


class TableOrderError(Exception):
    code = 'error'
    status_code = 500
    default_message = _('Unexpected error')

    def __init__(self, message=None, **details):
        self.message = str(message or self.default_message)
        self.details = details
        super().__init__(self.message)

    def as_dict(self):
        data = {
            'success': False,
            'error': self.code,
            'message': self.message,
        }
        data.update(self.details)
        return data


class InvalidInput(TableOrderError):
    code = 'invalid_input'
    status_code = 400
    default_message = _('Invalid input')


class UnknownTenant(TableOrderError):
    code = 'unknown_tenant'
    status_code = 404
    default_message = _('Restaurant not found')


class NotFound(TableOrderError):
    code = 'not_found'
    status_code = 404
    default_message = _('Not found')


class IllegalTransition(TableOrderError):
    """Raised with the order's actual status so callers can reconcile."""

    code = 'illegal_transition'
    status_code = 409
    default_message = _('Illegal status transition')

    def __init__(self, message=None, current_status=None, requested_status=None):
        super().__init__(
            message,
            current_status=current_status,
            requested_status=requested_status,
        )
        self.current_status = current_status
        self.requested_status = requested_status


class Forbidden(TableOrderError):
    code = 'forbidden'
    status_code = 403
    default_message = _('You do not have permission for this')


class Transient(TableOrderError):
    code = 'transient'
    status_code = 503
    default_message = _('Temporary storage failure, try again')
