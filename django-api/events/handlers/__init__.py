from events.handlers.views import (
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

__all__ = [
    "BatchDetailView",
    "BatchListView",
    "CouponDetailView",
    "CouponListView",
    "CouponValidateView",
    "EventBySlugView",
    "EventDetailView",
    "EventListView",
    "KitView",
    "ModalityDetailView",
    "ModalityListView",
]
