"""HTTP handlers (views) - handle HTTP concerns only.

Handlers:
- Parse requests and validate input format
- Call services for business logic
- Never contain business logic

Domain errors propagate to the project exception handler.
"""

from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.handlers import IsOrganizer
from events.domain import EventStatus
from events.handlers.serializers import (
    BatchInputSerializer,
    BatchSerializer,
    CouponInputSerializer,
    CouponSerializer,
    CouponUpdateSerializer,
    EventDetailSerializer,
    EventInputSerializer,
    EventListQuerySerializer,
    EventPageSerializer,
    EventSerializer,
    EventUpdateSerializer,
    KitInputSerializer,
    KitSerializer,
    ModalityInputSerializer,
    ModalitySerializer,
    PriceQuoteRequestSerializer,
    PriceQuoteSerializer,
)
from events.services.catalog_service import CatalogService
from events.services.event_service import EventService
from events.services.pricing import PricingService


class OrganizerView(APIView):
    permission_classes = [IsOrganizer]


class EventView(OrganizerView):
    service: EventService = None


class CatalogView(OrganizerView):
    catalog: CatalogService = None


class EventListView(EventView):
    """Handler for GET/POST /api/events"""

    def get(self, request: Request) -> Response:
        query = EventListQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data
        page = self.service.list_events(
            request.user.id,
            status=EventStatus(params["status"]) if "status" in params else None,
            search=params.get("search") or None,
            page=params["page"],
            limit=params["limit"],
        )
        return Response(EventPageSerializer(page).data)

    def post(self, request: Request) -> Response:
        serializer = EventInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        event = self.service.create_event(request.user.id, serializer.to_draft())
        return Response(EventSerializer(event).data, status=status.HTTP_201_CREATED)


class EventDetailView(EventView):
    """Handler for GET/PATCH/DELETE /api/events/{event_id}"""

    def get(self, request: Request, event_id: str) -> Response:
        event = self.service.get_event(request.user.id, event_id)
        return Response(EventSerializer(event).data)

    def patch(self, request: Request, event_id: str) -> Response:
        serializer = EventUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        event = self.service.update_event(request.user.id, event_id, serializer.to_changes())
        return Response(EventSerializer(event).data)

    def delete(self, request: Request, event_id: str) -> Response:
        self.service.delete_event(request.user.id, event_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


class EventBySlugView(EventView):
    """Handler for GET /api/events/by-slug/{slug}"""

    permission_classes = [AllowAny]

    def get(self, request: Request, slug: str) -> Response:
        return Response(EventDetailSerializer(self.service.get_public_event(slug)).data)


class ModalityListView(CatalogView):
    """Handler for GET/POST /api/events/{event_id}/modalities"""

    def get(self, request: Request, event_id: str) -> Response:
        modalities = self.catalog.list_modalities(request.user.id, event_id)
        return Response(ModalitySerializer(modalities, many=True).data)

    def post(self, request: Request, event_id: str) -> Response:
        serializer = ModalityInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        modality = self.catalog.create_modality(request.user.id, event_id, serializer.to_draft())
        return Response(ModalitySerializer(modality).data, status=status.HTTP_201_CREATED)


class ModalityDetailView(CatalogView):
    """Handler for PATCH/DELETE /api/events/{event_id}/modalities/{modality_id}"""

    def patch(self, request: Request, event_id: str, modality_id: str) -> Response:
        serializer = ModalityInputSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        modality = self.catalog.update_modality(request.user.id, event_id, modality_id, serializer.to_changes())
        return Response(ModalitySerializer(modality).data)

    def delete(self, request: Request, event_id: str, modality_id: str) -> Response:
        self.catalog.delete_modality(request.user.id, event_id, modality_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


class BatchListView(CatalogView):
    """Handler for GET/POST /api/events/{event_id}/batches"""

    def get(self, request: Request, event_id: str) -> Response:
        return Response(BatchSerializer(self.catalog.list_batches(request.user.id, event_id), many=True).data)

    def post(self, request: Request, event_id: str) -> Response:
        serializer = BatchInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        batch = self.catalog.create_batch(request.user.id, event_id, serializer.to_draft())
        return Response(BatchSerializer(batch).data, status=status.HTTP_201_CREATED)


class BatchDetailView(CatalogView):
    """Handler for PATCH/DELETE /api/events/{event_id}/batches/{batch_id}"""

    def patch(self, request: Request, event_id: str, batch_id: str) -> Response:
        serializer = BatchInputSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        batch = self.catalog.update_batch(request.user.id, event_id, batch_id, serializer.to_changes())
        return Response(BatchSerializer(batch).data)

    def delete(self, request: Request, event_id: str, batch_id: str) -> Response:
        self.catalog.delete_batch(request.user.id, event_id, batch_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


class CouponListView(CatalogView):
    """Handler for GET/POST /api/events/{event_id}/coupons"""

    def get(self, request: Request, event_id: str) -> Response:
        return Response(CouponSerializer(self.catalog.list_coupons(request.user.id, event_id), many=True).data)

    def post(self, request: Request, event_id: str) -> Response:
        serializer = CouponInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        coupon = self.catalog.create_coupon(request.user.id, event_id, serializer.to_draft())
        return Response(CouponSerializer(coupon).data, status=status.HTTP_201_CREATED)


class CouponDetailView(CatalogView):
    """Handler for PATCH/DELETE /api/events/{event_id}/coupons/{coupon_id}"""

    def patch(self, request: Request, event_id: str, coupon_id: str) -> Response:
        serializer = CouponUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        coupon = self.catalog.update_coupon(request.user.id, event_id, coupon_id, serializer.to_changes())
        return Response(CouponSerializer(coupon).data)

    def delete(self, request: Request, event_id: str, coupon_id: str) -> Response:
        self.catalog.delete_coupon(request.user.id, event_id, coupon_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


class CouponValidateView(APIView):
    """Handler for POST /api/events/{event_id}/coupons/validate

    Public: prices a purchase the way checkout will, coupon included.
    """

    permission_classes = [AllowAny]
    pricing: PricingService = None

    def post(self, request: Request, event_id: str) -> Response:
        serializer = PriceQuoteRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        quote = self.pricing.compute_price(
            str(data["modality_id"]),
            coupon_code=data.get("code", "").strip().upper() or None,
            quantity=data["quantity"],
            event_id=event_id,
        )
        return Response({"valid": True, "quote": PriceQuoteSerializer(quote).data})


class KitView(CatalogView):
    """Handler for GET/POST/PATCH /api/events/{event_id}/kit"""

    def get(self, request: Request, event_id: str) -> Response:
        return Response(KitSerializer(self.catalog.get_kit(request.user.id, event_id)).data)

    def post(self, request: Request, event_id: str) -> Response:
        serializer = KitInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        kit = self.catalog.create_kit(request.user.id, event_id, serializer.to_draft())
        return Response(KitSerializer(kit).data, status=status.HTTP_201_CREATED)

    def patch(self, request: Request, event_id: str) -> Response:
        serializer = KitInputSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        kit = self.catalog.update_kit(request.user.id, event_id, serializer.to_changes())
        return Response(KitSerializer(kit).data)
