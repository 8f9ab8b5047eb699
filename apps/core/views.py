"""
Authentication views for newsroom staff.
"""

from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from apps.core.middleware import bind_request_user
from apps.core.serializers import CustomTokenObtainPairSerializer, UserSerializer


class RequestUserContextMixin:
    """Put the DRF-authenticated user into the request context for logs and audit."""

    def perform_authentication(self, request):
        super().perform_authentication(request)
        bind_request_user(request.user)


class CustomTokenObtainPairView(TokenObtainPairView):
    """
    Login endpoint that returns JWT tokens.

    POST /api/auth/login/
    Body: {"username": "...", "password": "..."}
    Returns: {"access": "...", "refresh": "...", "user": {...}}
    """
    serializer_class = CustomTokenObtainPairSerializer
    permission_classes = [AllowAny]


class CustomTokenRefreshView(TokenRefreshView):
    """
    Token refresh endpoint.

    POST /api/auth/refresh/
    """
    permission_classes = [AllowAny]


class CurrentUserView(RequestUserContextMixin, APIView):
    """GET /api/auth/me/ - the authenticated user with staff role."""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(UserSerializer(request.user).data)
