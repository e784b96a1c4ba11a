"""Settings access: module defaults overridden by ``settings.TABLEORDER``."""

from django.conf import settings

from .module import SETTINGS


def get_setting(name):
    overrides = getattr(settings, 'TABLEORDER', None) or {}
    if name in overrides:
        return overrides[name]
    return SETTINGS[name]
