"""
Identity collaborator: who is signed in, and the session lifecycle around it.

Access tokens travel in the response body; the refresh token only ever lives
in an HttpOnly cookie scoped to the token endpoints.
"""
from dataclasses import dataclass
from typing import Optional

from django.conf import settings
from django.contrib.auth import logout
from django.http import JsonResponse
from django.middleware.csrf import get_token
from django.utils.decorators import method_decorator
from django.views.decorators.csrf import csrf_protect, ensure_csrf_cookie

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError
from rest_framework_simplejwt.settings import api_settings as jwt_settings
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from .permissions import ADMIN_PERMISSIONS

COOKIE_NAME = "refresh_token"
COOKIE_PATH = "/api/token/"


@dataclass(frozen=True)
class CurrentUser:
    email: str
    is_staff: bool = False


def current_user(request) -> Optional[CurrentUser]:
    user = getattr(request, "user", None)
    if user is None or not user.is_authenticated:
        return None
    return CurrentUser(email=user.email or user.get_username(), is_staff=user.is_staff)


def keep_refresh_token(response):
    """Move a ``refresh`` token out of the body into the HttpOnly cookie."""
    refresh = response.data.pop("refresh", None) if response.status_code == status.HTTP_200_OK else None
    if refresh:
        response.set_cookie(
            COOKIE_NAME, refresh,
            max_age=int(jwt_settings.REFRESH_TOKEN_LIFETIME.total_seconds()),
            httponly=True,
            secure=not settings.DEBUG,
            samesite="Lax",
            path=COOKIE_PATH,
        )
    return response


def refresh_token_from(request):
    """Cookie first; an explicit body token wins for non-browser clients."""
    return request.data.get("refresh") or request.COOKIES.get(COOKIE_NAME)


def sign_out(request, response=None):
    """End the Django session (if any) and drop the refresh cookie."""
    django_request = getattr(request, "_request", request)
    if hasattr(django_request, "session"):
        logout(django_request)
    if response is not None:
        response.delete_cookie(COOKIE_NAME, path=COOKIE_PATH)
    return response


@ensure_csrf_cookie
def csrf_token(request):
    return JsonResponse({"csrfToken": get_token(request)})


@method_decorator(csrf_protect, name="post")
class SignInAPIView(TokenObtainPairView):
    def post(self, request, *args, **kwargs):
        return keep_refresh_token(super().post(request, *args, **kwargs))


@method_decorator(csrf_protect, name="post")
class RefreshSessionAPIView(TokenRefreshView):
    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data={"refresh": refresh_token_from(request)})
        try:
            serializer.is_valid(raise_exception=True)
        except TokenError as e:
            raise InvalidToken(e.args[0])
        # rotated refresh tokens go back into the cookie
        return keep_refresh_token(Response(dict(serializer.validated_data), status=status.HTTP_200_OK))


class MeAPIView(APIView):
    permission_classes = ADMIN_PERMISSIONS

    def get(self, request):
        user = current_user(request)
        return Response({"email": user.email, "is_staff": user.is_staff}, status=status.HTTP_200_OK)


class LogoutAPIView(APIView):
    permission_classes = ()

    def post(self, request):
        return sign_out(request, Response({"detail": "Logged out"}, status=status.HTTP_200_OK))
