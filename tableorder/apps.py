from django.apps import AppConfig


class TableOrderConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'tableorder'
    verbose_name = 'Table Orders & Live Kitchen'

    def ready(self):
        from . import signals  # noqa
