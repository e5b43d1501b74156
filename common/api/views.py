from django.db import connection
from django.utils import timezone
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from common.exceptions import DomainError


class ServiceUnavailable(DomainError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    kind = "ServiceUnavailable"
    default_detail = "Database is not reachable."


class StatusAPIView(APIView):
    """
    GET /api/status/

    Health check for load balancers and the dashboard:
    - status: "ok"
    - database: "ok" once a trivial query succeeded
    - timestamp: server time (ISO 8601)

    Authentication: none
    Permissions: AllowAny
    """

    authentication_classes = []          # No authentication required
    permission_classes = [AllowAny]      # Explicitly allow public access

    def get(self, request):
        try:
            with connection.cursor() as cursor:
                cursor.execute("SELECT 1")
        except Exception as exc:
            raise ServiceUnavailable(detail=str(exc)) from exc
        data = {
            "status": "ok",
            "database": "ok",
            "timestamp": timezone.now().isoformat(),
        }
        return Response(data, status=status.HTTP_200_OK)
