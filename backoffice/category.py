import logging

from asgiref.sync import async_to_sync

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from .container import get_backoffice
from .permissions import ADMIN_PERMISSIONS, STOREFRONT_PERMISSIONS
from .records import CategoryDraft, CategoryPatch
from .utilities import _parse_payload, _required_id, derive_slug

logger = logging.getLogger(__name__)


class ShowCategoriesAPIView(APIView):
    permission_classes = STOREFRONT_PERMISSIONS

    def get(self, request):
        rows = async_to_sync(get_backoffice().categories.list)()
        return Response(rows, status=status.HTTP_200_OK)


class SaveCategoryAPIView(APIView):
    permission_classes = ADMIN_PERMISSIONS

    def post(self, request):
        draft = CategoryDraft.from_payload(_parse_payload(request))
        if not (draft.slug or "").strip():
            draft.slug = derive_slug(draft.name)
        row = async_to_sync(get_backoffice().categories.create)(draft)
        logger.info("Category '%s' created", row["name"])
        return Response({"success": True, "category": row}, status=status.HTTP_201_CREATED)


class EditCategoryAPIView(APIView):
    """Renaming a category leaves products pointing at the old name."""
    permission_classes = ADMIN_PERMISSIONS

    def put(self, request):
        return self.post(request)

    def post(self, request):
        data = _parse_payload(request)
        category_id = _required_id(data)
        row = async_to_sync(get_backoffice().categories.update)(category_id, CategoryPatch.from_payload(data))
        return Response({"success": True, "category": row}, status=status.HTTP_200_OK)


class DeleteCategoryAPIView(APIView):
    permission_classes = ADMIN_PERMISSIONS

    def delete(self, request):
        return self.post(request)

    def post(self, request):
        category_id = _required_id(_parse_payload(request))
        async_to_sync(get_backoffice().categories.delete)(category_id)
        return Response({"success": True, "deleted": category_id}, status=status.HTTP_200_OK)
