from events.domain.models import (
    Batch,
    BatchType,
    Coupon,
    Event,
    EventDetail,
    EventStatus,
    Kit,
    KitItem,
    KitSize,
    Modality,
    ShirtSize,
)
from events.domain.value_objects import (
    BatchId,
    Capacity,
    CouponId,
    Discount,
    DiscountType,
    EventId,
    ModalityId,
    Money,
)

__all__ = [
    "Batch",
    "BatchId",
    "BatchType",
    "Capacity",
    "Coupon",
    "CouponId",
    "Discount",
    "DiscountType",
    "Event",
    "EventDetail",
    "EventId",
    "EventStatus",
    "Kit",
    "KitItem",
    "KitSize",
    "Modality",
    "ModalityId",
    "Money",
    "ShirtSize",
]
