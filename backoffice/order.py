# Standard Library
import logging

# Third-party
from asgiref.sync import async_to_sync

# Django REST Framework
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

# Local
from .container import get_backoffice
from .permissions import ADMIN_PERMISSIONS, STOREFRONT_PERMISSIONS
from .records import OrderDraft
from .utilities import _parse_payload, _required_id

logger = logging.getLogger(__name__)


class ShowOrdersAPIView(APIView):
    """
    GET /api/show-orders/?status=<status|all>&q=<text>

    Same filtering as the order desk: both the status and the
    name/email text filter must pass. ``counts`` always covers every order.
    """
    permission_classes = ADMIN_PERMISSIONS

    def get(self, request):
        desk = get_backoffice().order_desk()
        outcome = async_to_sync(desk.load)()
        if not outcome.ok:
            raise outcome.error
        desk.status_filter = request.query_params.get("status") or "all"
        desk.search_term = request.query_params.get("q") or ""
        return Response(
            {"orders": desk.filtered_orders, "counts": desk.status_counts},
            status=status.HTTP_200_OK,
        )


class ShowSpecificOrderAPIView(APIView):
    permission_classes = ADMIN_PERMISSIONS

    def get(self, request):
        order_id = _required_id(request.query_params)
        return Response(async_to_sync(get_backoffice().orders.get_by_id)(order_id))

    def post(self, request):
        order_id = _required_id(_parse_payload(request))
        return Response(async_to_sync(get_backoffice().orders.get_by_id)(order_id))


class SaveOrderAPIView(APIView):
    """Checkout. New orders always start out pending."""
    permission_classes = STOREFRONT_PERMISSIONS

    def post(self, request):
        data = {k: v for k, v in _parse_payload(request).items() if k != "status"}
        row = async_to_sync(get_backoffice().orders.create)(OrderDraft.from_payload(data))
        logger.info("Order %s placed by %s", row["id"], row["customer_email"])
        return Response({"success": True, "order": row}, status=status.HTTP_201_CREATED)


class EditOrderStatusAPIView(APIView):
    permission_classes = ADMIN_PERMISSIONS

    def put(self, request):
        return self.post(request)

    def post(self, request):
        data = _parse_payload(request)
        order_id = _required_id(data)
        row = async_to_sync(get_backoffice().orders.update_status)(order_id, data.get("status"))
        return Response({"success": True, "order": row}, status=status.HTTP_200_OK)


class DeleteOrderAPIView(APIView):
    permission_classes = ADMIN_PERMISSIONS

    def delete(self, request):
        return self.post(request)

    def post(self, request):
        order_id = _required_id(_parse_payload(request))
        async_to_sync(get_backoffice().orders.delete)(order_id)
        return Response({"success": True, "deleted": order_id}, status=status.HTTP_200_OK)
