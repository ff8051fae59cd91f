from django.urls import path

from events.handlers import (
    BatchDetailView,
    BatchListView,
    CouponDetailView,
    CouponListView,
    CouponValidateView,
    EventBySlugView,
    EventDetailView,
    EventListView,
    KitView,
    ModalityDetailView,
    ModalityListView,
)


def get_urlpatterns(container) -> list:
    events, catalog = container.events, container.catalog
    return [
        path("events", EventListView.as_view(service=events), name="event-list"),
        path("events/by-slug/<str:slug>", EventBySlugView.as_view(service=events), name="event-by-slug"),
        path("events/<str:event_id>", EventDetailView.as_view(service=events), name="event-detail"),
        path(
            "events/<str:event_id>/modalities",
            ModalityListView.as_view(catalog=catalog),
            name="modality-list",
        ),
        path(
            "events/<str:event_id>/modalities/<str:modality_id>",
            ModalityDetailView.as_view(catalog=catalog),
            name="modality-detail",
        ),
        path("events/<str:event_id>/batches", BatchListView.as_view(catalog=catalog), name="batch-list"),
        path(
            "events/<str:event_id>/batches/<str:batch_id>",
            BatchDetailView.as_view(catalog=catalog),
            name="batch-detail",
        ),
        path("events/<str:event_id>/coupons", CouponListView.as_view(catalog=catalog), name="coupon-list"),
        path(
            "events/<str:event_id>/coupons/validate",
            CouponValidateView.as_view(pricing=container.pricing),
            name="coupon-validate",
        ),
        path(
            "events/<str:event_id>/coupons/<str:coupon_id>",
            CouponDetailView.as_view(catalog=catalog),
            name="coupon-detail",
        ),
        path("events/<str:event_id>/kit", KitView.as_view(catalog=catalog), name="event-kit"),
    ]
