import logging

from asgiref.sync import async_to_sync

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from .container import get_backoffice
from .permissions import ADMIN_PERMISSIONS, STOREFRONT_PERMISSIONS
from .utilities import _parse_payload

logger = logging.getLogger(__name__)


class ShowSubscribersAPIView(APIView):
    permission_classes = ADMIN_PERMISSIONS

    def get(self, request):
        rows = async_to_sync(get_backoffice().newsletter.list)()
        return Response({"count": len(rows), "subscribers": rows}, status=status.HTTP_200_OK)


class SubscribeNewsletterAPIView(APIView):
    permission_classes = STOREFRONT_PERMISSIONS

    def post(self, request):
        row = async_to_sync(get_backoffice().newsletter.subscribe)(_parse_payload(request).get("email"))
        return Response({"success": True, "subscriber": row}, status=status.HTTP_201_CREATED)


class UnsubscribeNewsletterAPIView(APIView):
    permission_classes = STOREFRONT_PERMISSIONS

    def post(self, request):
        email = _parse_payload(request).get("email")
        async_to_sync(get_backoffice().newsletter.unsubscribe)(email)
        return Response({"success": True}, status=status.HTTP_200_OK)
