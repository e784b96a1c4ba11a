from django.core.management.base import BaseCommand, CommandError

from tableorder.exceptions import InvalidInput
from tableorder.services import TenantService


class Command(BaseCommand):
    help = 'Create a restaurant tenant with its staff role passwords.'

    def add_arguments(self, parser):
        parser.add_argument('handle', help='Public handle used in QR links')
        parser.add_argument('display_name')
        parser.add_argument('--owner-password', required=True)
        parser.add_argument('--chef-password', default='')
        parser.add_argument('--waiter-password', default='')

    def handle(self, *args, **options):
        try:
            tenant = TenantService.create_tenant(
                handle=options['handle'],
                display_name=options['display_name'],
                owner_password=options['owner_password'],
                chef_password=options['chef_password'],
                waiter_password=options['waiter_password'],
            )
        except InvalidInput as exc:
            raise CommandError(f"{exc.message}: {exc.details.get('errors')}")
        self.stdout.write(self.style.SUCCESS(f"Created tenant {tenant.handle} ({tenant.pk})"))
