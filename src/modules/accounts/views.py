"""Account API views.

Login and token refresh are SimpleJWT's own views; signup creates a
regular user and returns a token pair so the client is logged in at once.
"""

from __future__ import annotations

import structlog
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.tokens import RefreshToken

from modules.accounts.serializers import SignupSerializer, UserSerializer

logger = structlog.get_logger(__name__)


class SignupView(APIView):
    """POST /api/v1/auth/signup/"""

    permission_classes = [AllowAny]
    authentication_classes: list = []
    throttle_scope = "signup"

    def post(self, request: Request) -> Response:
        serializer = SignupSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()

        refresh = RefreshToken.for_user(user)
        logger.info("account.signed_up", user_id=user.pk)

        return Response(
            {
                "user": UserSerializer(user).data,
                "access": str(refresh.access_token),
                "refresh": str(refresh),
            },
            status=status.HTTP_201_CREATED,
        )
