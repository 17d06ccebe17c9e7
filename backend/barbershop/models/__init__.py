from .tables import (
    Base,
    metadata,
    AvailabilityRule,
    BlockedInterval,
    Booking,
    BookingService,
    Service,
    WaitlistEntry,
    WaitlistService,
)

__all__ = [
    "Base",
    "metadata",
    "AvailabilityRule",
    "BlockedInterval",
    "Booking",
    "BookingService",
    "Service",
    "WaitlistEntry",
    "WaitlistService",
]
