from .ics_feed import fetch_feed
from .store import BookingStore, InMemoryBookingStore, JsonFileBookingStore

__all__ = [
    "fetch_feed",
    "BookingStore",
    "InMemoryBookingStore",
    "JsonFileBookingStore",
]
