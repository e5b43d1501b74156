"""Auth API views.

Implements token-based registration and login. Registration creates the user
and its role profile in one step; both endpoints answer with the token and
the user's role so the client can route to the matching dashboard.
"""

import logging

from django.contrib.auth import get_user_model
from rest_framework import status
from rest_framework.authtoken.models import Token
from rest_framework.response import Response
from rest_framework.views import APIView

from .permissions import AllowAnyRegistration, AllowedAnyLogin
from .serializers import LoginSerializer, RegistrationSerializer

User = get_user_model()
logger = logging.getLogger(__name__)


def _token_payload(user, token):
    profile = getattr(user, "profile", None)
    return {
        "token": token.key,
        "username": user.username,
        "email": user.email,
        "user_id": user.id,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "role": profile.role if profile else "",
    }


class RegistrationView(APIView):
    """POST /api/registration/ -> create user and role profile, return auth token."""

    permission_classes = [AllowAnyRegistration]

    def post(self, request, *args, **kwargs):
        serializer = RegistrationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = serializer.save()
        token, _ = Token.objects.get_or_create(user=user)
        logger.info("Registered user %s as %s", user.id, user.profile.role)
        return Response(_token_payload(user, token), status=status.HTTP_201_CREATED)


class LoginView(APIView):
    """POST /api/login/ -> validate credentials and return auth token."""

    permission_classes = [AllowedAnyLogin]

    def post(self, request, *args, **kwargs):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = serializer.validated_data["user"]
        token, _ = Token.objects.get_or_create(user=user)
        return Response(_token_payload(user, token), status=status.HTTP_200_OK)
