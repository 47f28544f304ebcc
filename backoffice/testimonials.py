import logging

from asgiref.sync import async_to_sync

from rest_framework import status
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.response import Response
from rest_framework.views import APIView

from .container import get_backoffice
from .errors import BackofficeError
from .permissions import ADMIN_PERMISSIONS, STOREFRONT_PERMISSIONS
from .records import TestimonialDraft, TestimonialPatch
from .utilities import _as_bool, _parse_payload, _required_id

logger = logging.getLogger(__name__)


def _avatar_url(request, data):
    """An uploaded ``image`` file or data URL becomes a bucket URL; plain URLs pass through."""
    upload = request.FILES.get("image") if request.FILES else None
    source = upload or data.get("image")
    if upload is None and not (isinstance(source, str) and source.startswith("data:image/")):
        return None
    return async_to_sync(get_backoffice().assets.upload_file)(source, folder="testimonials")


class ShowTestimonialsAPIView(APIView):
    permission_classes = STOREFRONT_PERMISSIONS

    def get(self, request):
        include_all = request.user.is_authenticated and _as_bool(request.query_params.get("all"))
        rows = async_to_sync(get_backoffice().testimonials.list)(only_active=not include_all)
        return Response(rows, status=status.HTTP_200_OK)


class SaveTestimonialsAPIView(APIView):
    permission_classes = ADMIN_PERMISSIONS
    parser_classes = [MultiPartParser, FormParser, JSONParser]

    def post(self, request):
        backoffice = get_backoffice()
        data = _parse_payload(request)
        draft = TestimonialDraft.from_payload({k: v for k, v in data.items() if k != "image"})
        draft.validated()

        uploaded = _avatar_url(request, data)
        draft.image = uploaded or data.get("image") or None
        try:
            row = async_to_sync(backoffice.testimonials.create)(draft)
        except BackofficeError:
            if uploaded:
                async_to_sync(backoffice.assets.delete_file)(uploaded)
            raise
        return Response({"success": True, "testimonial": row}, status=status.HTTP_201_CREATED)


class EditTestimonialsAPIView(APIView):
    """PUT/POST updates the fields sent; DELETE removes the testimonial."""
    permission_classes = ADMIN_PERMISSIONS
    parser_classes = [MultiPartParser, FormParser, JSONParser]

    def put(self, request):
        return self.post(request)

    def post(self, request):
        data = _parse_payload(request)
        testimonial_id = _required_id(data)
        patch = TestimonialPatch.from_payload({k: v for k, v in data.items() if k not in ("id", "image")})
        if "image" in data or (request.FILES and "image" in request.FILES):
            patch.image = _avatar_url(request, data) or data.get("image") or None
        row = async_to_sync(get_backoffice().testimonials.update)(testimonial_id, patch)
        return Response({"success": True, "testimonial": row}, status=status.HTTP_200_OK)

    def delete(self, request):
        testimonial_id = _required_id(_parse_payload(request))
        async_to_sync(get_backoffice().testimonials.delete)(testimonial_id)
        return Response({"success": True, "deleted": testimonial_id}, status=status.HTTP_200_OK)


class ToggleTestimonialAPIView(APIView):
    permission_classes = ADMIN_PERMISSIONS

    def post(self, request):
        data = _parse_payload(request)
        testimonial_id = _required_id(data)
        active = _as_bool(data.get("active"), default=None)
        row = async_to_sync(get_backoffice().testimonials.toggle_active)(testimonial_id, active)
        return Response({"success": True, "testimonial": row}, status=status.HTTP_200_OK)
