"""HTTP handlers for checkout, registrations and payment notifications.

Domain errors propagate to the project exception handler.
"""

from datetime import timedelta

import structlog
from django.conf import settings
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.handlers import IsOrganizer, IsParticipant
from events.handlers.serializers import EventSerializer
from registrations.handlers.serializers import (
    CheckoutResultSerializer,
    CheckoutSerializer,
    DashboardStatsSerializer,
    KnownParticipantSerializer,
    PaymentSyncSerializer,
    PendingSyncSerializer,
    PublicRegistrationSerializer,
    RegistrationCheckSerializer,
    RegistrationCreateSerializer,
    RegistrationDetailSerializer,
    RegistrationSerializer,
    RegistrationSummarySerializer,
    SyncResultSerializer,
    WebhookSerializer,
)
from registrations.services.checkout_service import CheckoutResult, CheckoutService
from registrations.services.dashboard_service import DashboardService
from registrations.services.payment_sync_service import PaymentSyncService
from registrations.services.registration_service import RegistrationService, summarize
from registrations.services.webhook_service import Notification, WebhookService

logger = structlog.get_logger(__name__)


def _checkout_payload(result: CheckoutResult) -> dict:
    payload = CheckoutResultSerializer(result).data
    expires_at = result.primary.created_at + timedelta(minutes=settings.PAYMENT_WINDOW_MINUTES)
    payload["expires_at"] = expires_at.isoformat()
    return payload


class CheckoutView(APIView):
    """Handler for POST /api/checkout

    Public: registers one or more attendees and returns the provider checkout.
    """

    permission_classes = [AllowAny]
    checkout: CheckoutService = None

    def post(self, request: Request) -> Response:
        serializer = CheckoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = self.checkout.checkout(serializer.to_request())
        return Response(_checkout_payload(result), status=status.HTTP_201_CREATED)


class RegistrationCreateView(APIView):
    """Handler for POST /api/registrations/create"""

    permission_classes = [IsParticipant]
    checkout: CheckoutService = None

    def post(self, request: Request) -> Response:
        serializer = RegistrationCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = self.checkout.register(serializer.to_request(request.user.id))
        return Response(_checkout_payload(result), status=status.HTTP_201_CREATED)


class RegistrationView(APIView):
    service: RegistrationService = None


class MyRegistrationsView(RegistrationView):
    """Handler for GET /api/registrations/my"""

    permission_classes = [IsParticipant]

    def get(self, request: Request) -> Response:
        details = self.service.list_for_participant(request.user.id)
        return Response(RegistrationDetailSerializer(details, many=True).data)


class RegistrationCheckView(RegistrationView):
    """Handler for GET /api/registrations/check?event_id=&modality_id=

    Tells a signed-in participant whether they already hold a registration
    in the modality, so the checkout can point them to it instead.
    """

    permission_classes = [IsParticipant]

    def get(self, request: Request) -> Response:
        serializer = RegistrationCheckSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        detail = self.service.find_existing(
            request.user.id,
            str(serializer.validated_data["event_id"]),
            str(serializer.validated_data["modality_id"]),
        )
        if detail is None:
            return Response({"exists": False})
        return Response({"exists": True, "registration": RegistrationDetailSerializer(detail).data})


class RegistrationDetailView(RegistrationView):
    """Handler for GET /api/registrations/{registration_id}

    Public status page, e.g. after returning from the provider checkout.
    """

    permission_classes = [AllowAny]

    def get(self, request: Request, registration_id: str) -> Response:
        detail = self.service.get_registration(registration_id)
        return Response(PublicRegistrationSerializer(detail).data)


class RegistrationCancelView(RegistrationView):
    """Handler for POST /api/registrations/{registration_id}/cancel"""

    permission_classes = [IsAuthenticated]

    def post(self, request: Request, registration_id: str) -> Response:
        registration = self.service.cancel_registration(registration_id, request.user)
        return Response(RegistrationSerializer(registration).data)


class EventRegistrationsView(RegistrationView):
    """Handler for GET /api/events/{event_id}/registrations"""

    permission_classes = [IsOrganizer]

    def get(self, request: Request, event_id: str) -> Response:
        event, details = self.service.list_for_event(request.user.id, event_id)
        return Response(
            {
                "event": EventSerializer(event).data,
                "summary": RegistrationSummarySerializer(summarize(details)).data,
                "registrations": RegistrationDetailSerializer(details, many=True).data,
            }
        )


class ParticipantMeView(RegistrationView):
    """Handler for GET /api/participants/me"""

    permission_classes = [IsParticipant]

    def get(self, request: Request) -> Response:
        return Response(KnownParticipantSerializer(self.service.participant_card(request.user.id)).data)


class RecentParticipantsView(RegistrationView):
    """Handler for GET /api/participants/recent

    People the signed-in buyer has registered before.
    """

    permission_classes = [IsParticipant]

    def get(self, request: Request) -> Response:
        attendees = self.service.recent_attendees(request.user.id)
        return Response({"participants": KnownParticipantSerializer(attendees, many=True).data})


class PaymentSyncView(APIView):
    """Handler for POST /api/payments/sync-status"""

    permission_classes = [IsOrganizer]
    sync: PaymentSyncService = None

    def post(self, request: Request) -> Response:
        serializer = PaymentSyncSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        registration_id = serializer.validated_data.get("registration_id")
        result = self.sync.sync(
            request.user.id,
            registration_id=str(registration_id) if registration_id else None,
            payment_id=serializer.validated_data.get("payment_id"),
        )
        return Response(SyncResultSerializer(result).data)


class PendingPaymentsView(APIView):
    """Handler for POST /api/payments/check-pending?event_id=&hours_ago=

    Syncs every unpaid order of the organizer, one result per order.
    """

    permission_classes = [IsOrganizer]
    sync: PaymentSyncService = None

    def post(self, request: Request) -> Response:
        serializer = PendingSyncSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        event_id = serializer.validated_data.get("event_id")
        hours_ago = serializer.validated_data.get("hours_ago")
        results = self.sync.sync_pending(
            request.user.id,
            event_id=str(event_id) if event_id else None,
            within=timedelta(hours=hours_ago) if hours_ago else None,
        )
        return Response(
            {
                "checked": len(results),
                "updated": sum(1 for result in results if result.result == "updated"),
                "results": SyncResultSerializer(results, many=True).data,
            }
        )


class ProviderFeeView(APIView):
    """Handler for POST /api/registrations/{registration_id}/recalculate-fee"""

    permission_classes = [IsOrganizer]
    sync: PaymentSyncService = None

    def post(self, request: Request, registration_id: str) -> Response:
        registration = self.sync.refresh_provider_fee(request.user.id, registration_id)
        return Response(RegistrationSerializer(registration).data)


class DashboardStatsView(APIView):
    """Handler for GET /api/dashboard/stats"""

    permission_classes = [IsOrganizer]
    dashboard: DashboardService = None

    def get(self, request: Request) -> Response:
        return Response(DashboardStatsSerializer(self.dashboard.stats(request.user.id)).data)


class MercadoPagoWebhookView(APIView):
    """Handler for GET/POST /api/webhooks/mercadopago

    Every authentic delivery is acknowledged with 200 so the provider stops
    retrying; only provider read failures surface as errors.
    """

    authentication_classes = []
    permission_classes = [AllowAny]
    webhooks: WebhookService = None

    def get(self, request: Request) -> Response:
        return Response({"status": "ok"})

    def post(self, request: Request) -> Response:
        raw_body = request.body
        self.webhooks.verify(
            request.headers.get("x-signature"),
            raw_body,
            [request.build_absolute_uri(), request.build_absolute_uri(request.path)],
        )

        payload = request.data if isinstance(request.data, dict) else {}
        if "data" not in payload and "data.id" in request.query_params:
            payload = {
                "type": request.query_params.get("type") or request.query_params.get("topic", ""),
                "data": {"id": request.query_params["data.id"]},
            }
        serializer = WebhookSerializer(data=payload)
        if not serializer.is_valid():
            logger.warning("webhook_payload_invalid", errors=serializer.errors)
            return Response({"result": "ignored"})

        data = serializer.validated_data
        outcome = self.webhooks.handle(
            Notification(type=data["type"], action=data.get("action") or None, payment_id=data["data"]["id"]),
            request_id=request.headers.get("x-request-id"),
        )
        body = {"result": outcome.result}
        if outcome.registration is not None:
            body["registration_id"] = str(outcome.registration.id)
            body["status"] = outcome.registration.status.value
        if outcome.code:
            body["code"] = outcome.code
        return Response(body)
