from django.apps import AppConfig
from django.conf import settings


class BackofficeConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'backoffice'
    backoffice = None

    def ready(self):
        import backoffice.signals  # noqa: F401
        from backoffice.container import Backoffice
        from backoffice.store import DjangoStoreClient

        self.backoffice = Backoffice(
            DjangoStoreClient(),
            bucket=getattr(settings, "BACKOFFICE_BUCKET", "images"),
        )
