"""HTTP handlers for connecting an organizer's payment account."""

import structlog
from django.conf import settings
from django.http import HttpResponseRedirect
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.handlers import IsOrganizer
from common.errors import DomainError
from payments.services import ConnectionService

logger = structlog.get_logger(__name__)


class ConnectionView(APIView):
    service: ConnectionService = None


class AuthorizeView(ConnectionView):
    """Handler for GET /api/auth/mercadopago/authorize"""

    permission_classes = [IsOrganizer]

    def get(self, request: Request) -> Response:
        return Response({"authorization_url": self.service.authorization_url(request.user.id)})


class CallbackView(ConnectionView):
    """Handler for GET /api/auth/mercadopago/callback

    Reached by the organizer's browser; always redirects back to the dashboard.
    """

    def get(self, request: Request) -> HttpResponseRedirect:
        code = request.query_params.get("code")
        state = request.query_params.get("state")
        if not code or not state:
            return HttpResponseRedirect(f"{settings.APP_URL}/dashboard?mp=error")
        try:
            self.service.complete_authorization(state, code)
        except DomainError as exc:
            logger.warning("payment_account_connect_failed", code=exc.code.value)
            return HttpResponseRedirect(f"{settings.APP_URL}/dashboard?mp=error")
        return HttpResponseRedirect(f"{settings.APP_URL}/dashboard?mp=connected")


class StatusView(ConnectionView):
    """Handler for GET /api/auth/mercadopago/status"""

    permission_classes = [IsOrganizer]

    def get(self, request: Request) -> Response:
        connection = self.service.status(request.user.id)
        return Response(
            {
                "connected": connection.connected,
                "provider_user_id": connection.provider_user_id,
                "expires_at": connection.expires_at,
            }
        )


class DisconnectView(ConnectionView):
    """Handler for POST /api/auth/mercadopago/disconnect"""

    permission_classes = [IsOrganizer]

    def post(self, request: Request) -> Response:
        self.service.disconnect(request.user.id)
        return Response({"connected": False})
