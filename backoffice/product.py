# Standard Library
import logging

# Third-party
from asgiref.sync import async_to_sync

# Django REST Framework
from rest_framework import status
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.response import Response
from rest_framework.views import APIView

# Local
from .container import get_backoffice
from .errors import AssetError, BackofficeError, ValidationError
from .permissions import ADMIN_PERMISSIONS, STOREFRONT_PERMISSIONS
from .records import ProductDraft, ProductPatch
from .utilities import _as_bool, _parse_payload, _required_id, derive_slug

logger = logging.getLogger(__name__)


def _incoming_images(request):
    """Uploaded files under ``images`` plus any data URLs in the JSON body."""
    files = list(request.FILES.getlist("images")) if request.FILES else []
    if not files:
        sources = request.data.get("images") if hasattr(request.data, "get") else None
        if isinstance(sources, str):
            sources = [sources]
        files = [s for s in (sources or []) if isinstance(s, str) and s.startswith("data:image/")]
    return files


# -----------------------
# Storefront
# -----------------------
class ShowProductsAPIView(APIView):
    """
    Active products for the storefront.

    Authenticated admins may pass ``?all=true`` to include inactive ones.
    ``?featured=true`` and ``?category=<name>`` narrow the list.
    """
    permission_classes = STOREFRONT_PERMISSIONS

    def get(self, request):
        products = get_backoffice().products
        params = request.query_params
        if _as_bool(params.get("featured")):
            rows = async_to_sync(products.featured)()
        elif params.get("category"):
            rows = async_to_sync(products.by_category)(params["category"])
        else:
            include_all = request.user.is_authenticated and _as_bool(params.get("all"))
            rows = async_to_sync(products.list)(only_active=not include_all)
        return Response(rows, status=status.HTTP_200_OK)


class ShowProductBySlugAPIView(APIView):
    permission_classes = STOREFRONT_PERMISSIONS

    def get(self, request):
        slug = (request.query_params.get("slug") or "").strip()
        if not slug:
            raise ValidationError("slug is required", field="slug")
        row = async_to_sync(get_backoffice().products.get_by_slug)(slug)
        return Response(row, status=status.HTTP_200_OK)


# -----------------------
# Admin
# -----------------------
class ShowSpecificProductAPIView(APIView):
    permission_classes = ADMIN_PERMISSIONS

    def get(self, request):
        product_id = _required_id(request.query_params)
        return Response(async_to_sync(get_backoffice().products.get_by_id)(product_id))

    def post(self, request):
        product_id = _required_id(_parse_payload(request))
        return Response(async_to_sync(get_backoffice().products.get_by_id)(product_id))


class SaveProductAPIView(APIView):
    permission_classes = ADMIN_PERMISSIONS
    parser_classes = [MultiPartParser, FormParser, JSONParser]

    def post(self, request):
        backoffice = get_backoffice()
        data = _parse_payload(request)
        draft = ProductDraft.from_payload(data)
        if not (draft.slug or "").strip():
            draft.slug = derive_slug(draft.name)

        uploads = _incoming_images(request)
        draft.images = [u for u in draft.images if not u.startswith("data:")]
        draft.validated()

        urls = []
        if uploads:
            try:
                urls = async_to_sync(backoffice.assets.upload_many)(uploads, folder="products")
            except AssetError as err:
                async_to_sync(backoffice.assets.delete_many)(getattr(err, "uploaded", []))
                raise
            draft.images = draft.images + urls

        try:
            row = async_to_sync(backoffice.products.create)(draft)
        except BackofficeError:
            # nothing references the fresh uploads now
            async_to_sync(backoffice.assets.delete_many)(urls)
            raise
        logger.info("Product %s created", row["id"])
        return Response({"success": True, "product": row}, status=status.HTTP_201_CREATED)


class EditProductAPIView(APIView):
    permission_classes = ADMIN_PERMISSIONS

    def put(self, request):
        return self.post(request)

    def post(self, request):
        data = _parse_payload(request)
        product_id = _required_id(data)
        patch = ProductPatch.from_payload(data)
        row = async_to_sync(get_backoffice().products.update)(product_id, patch)
        return Response({"success": True, "product": row}, status=status.HTTP_200_OK)


class DeleteProductAPIView(APIView):
    permission_classes = ADMIN_PERMISSIONS

    def delete(self, request):
        return self.post(request)

    def post(self, request):
        backoffice = get_backoffice()
        data = _parse_payload(request)
        product_id = _required_id(data)
        purge = _as_bool(data.get("purge_images"))

        images = []
        if purge:
            images = async_to_sync(backoffice.products.get_by_id)(product_id).get("images") or []
        async_to_sync(backoffice.products.delete)(product_id)

        leftovers = async_to_sync(backoffice.assets.delete_many)(images) if images else []
        return Response(
            {"success": True, "deleted": product_id, "unpurged_images": leftovers},
            status=status.HTTP_200_OK,
        )


class ToggleProductAPIView(APIView):
    permission_classes = ADMIN_PERMISSIONS

    def post(self, request):
        data = _parse_payload(request)
        product_id = _required_id(data)
        active = _as_bool(data.get("active"), default=None)
        row = async_to_sync(get_backoffice().products.toggle_active)(product_id, active)
        return Response({"success": True, "product": row}, status=status.HTTP_200_OK)


class UpdateProductStockAPIView(APIView):
    permission_classes = ADMIN_PERMISSIONS

    def post(self, request):
        data = _parse_payload(request)
        product_id = _required_id(data)
        row = async_to_sync(get_backoffice().products.update_stock)(product_id, data.get("stock"))
        return Response({"success": True, "product": row}, status=status.HTTP_200_OK)


class UploadProductImagesAPIView(APIView):
    permission_classes = ADMIN_PERMISSIONS
    parser_classes = [MultiPartParser, FormParser, JSONParser]

    def post(self, request):
        uploads = _incoming_images(request)
        if not uploads:
            raise ValidationError("No images provided", field="images")
        folder = (request.data.get("folder") or "products").strip() or "products"
        urls = async_to_sync(get_backoffice().assets.upload_many)(uploads, folder=folder)
        return Response({"success": True, "urls": urls}, status=status.HTTP_201_CREATED)
