"""
Tests for Table Order management commands.
"""

from io import StringIO

import pytest
from django.core.management import CommandError, call_command

from tableorder.models import Tenant
from tableorder.module import ROLE_CHEF, ROLE_OWNER


@pytest.mark.django_db
class TestCreateTenant:

    def test_create(self):
        out = StringIO()
        call_command(
            'create_tenant', 'curry-house', 'Curry House',
            '--owner-password', 'secret', '--chef-password', 'kitchen',
            stdout=out,
        )

        tenant = Tenant.objects.get(handle='curry-house')
        assert tenant.display_name == 'Curry House'
        assert tenant.check_role_password(ROLE_OWNER, 'secret')
        assert tenant.check_role_password(ROLE_CHEF, 'kitchen')
        assert tenant.waiter_password == ''
        assert 'Created tenant curry-house' in out.getvalue()

    def test_duplicate_handle(self, tenant):
        with pytest.raises(CommandError):
            call_command('create_tenant', 'spice-garden', 'Again', '--owner-password', 'x')

    def test_invalid_handle(self):
        with pytest.raises(CommandError):
            call_command('create_tenant', 'not a slug', 'Bad', '--owner-password', 'x')
        assert not Tenant.objects.exists()
