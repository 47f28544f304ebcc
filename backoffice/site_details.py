# ---- SITE SETTINGS / STATS / IMAGE APIS ----
import logging

from asgiref.sync import async_to_sync

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from .container import get_backoffice
from .errors import ValidationError
from .permissions import ADMIN_PERMISSIONS, STOREFRONT_PERMISSIONS
from .utilities import _parse_payload

logger = logging.getLogger(__name__)


class ShowSettingsAPIView(APIView):
    """Flat ``{key: value}`` mapping; every value is text."""
    permission_classes = STOREFRONT_PERMISSIONS

    def get(self, request):
        return Response(async_to_sync(get_backoffice().settings.get_all)(), status=status.HTTP_200_OK)


class SaveSettingsAPIView(APIView):
    permission_classes = ADMIN_PERMISSIONS

    def post(self, request):
        """
        Accepts either ``{"settings": {key: value, ...}}`` or a flat mapping.
        Returns the full mapping after the write.
        """
        data = _parse_payload(request)
        mapping = data.get("settings", data)
        if not isinstance(mapping, dict) or not mapping:
            raise ValidationError("No settings provided", field="settings")
        settings_service = get_backoffice().settings
        async_to_sync(settings_service.set_multiple)(dict(mapping))
        logger.info("Settings saved: %s", ", ".join(sorted(mapping)))
        return Response(async_to_sync(settings_service.get_all)(), status=status.HTTP_200_OK)

    def put(self, request):
        return self.post(request)


class ShowStatsAPIView(APIView):
    permission_classes = ADMIN_PERMISSIONS

    def get(self, request):
        return Response(async_to_sync(get_backoffice().stats.get_stats)(), status=status.HTTP_200_OK)


class DeleteImageAPIView(APIView):
    """Removes one bucket object by its public URL; foreign URLs are left alone."""
    permission_classes = ADMIN_PERMISSIONS

    def post(self, request):
        url = (_parse_payload(request).get("url") or "").strip()
        if not url:
            raise ValidationError("url is required", field="url")
        deleted = async_to_sync(get_backoffice().assets.delete_file)(url)
        return Response({"success": True, "deleted": deleted}, status=status.HTTP_200_OK)
