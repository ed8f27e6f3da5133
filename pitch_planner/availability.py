from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional

from .models import Booking, Fixture, Pitch

BLOCKING_STATUSES = frozenset({"requested", "approved"})

# From U14 upwards only the centre and right zones of the full-size pitch are used.
FULL_SIZE_MIN_AGE = 14
FULL_SIZE_ZONES = ("mitte", "rechts", "center", "centre", "right")


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open interval overlap: touching intervals do not overlap."""
    return a_start < b_end and b_start < a_end


def is_blocking(booking: Booking) -> bool:
    return booking.status in BLOCKING_STATUSES


def allowed_pitches_for_age(pitches: Iterable[Pitch], age_u: Optional[int]) -> List[Pitch]:
    pitches = list(pitches)
    if age_u is not None and age_u >= FULL_SIZE_MIN_AGE:
        return [
            p
            for p in pitches
            if p.type == "full_size" and any(z in (p.name or "").lower() for z in FULL_SIZE_ZONES)
        ]
    return pitches


def available_pitches(
    start: datetime,
    end: datetime,
    age_u: Optional[int],
    pitches: Iterable[Pitch],
    bookings: Iterable[Booking],
) -> List[Pitch]:
    """Eligible pitches with no blocking booking overlapping [start, end), in inventory order."""
    candidates = allowed_pitches_for_age(pitches, age_u)
    blocking = [b for b in bookings if is_blocking(b)]
    return [
        p
        for p in candidates
        if not any(b.pitch_id == p.id and overlaps(start, end, b.start_at, b.end_at) for b in blocking)
    ]


def available_for_fixture(
    fixture: Fixture, age_u: Optional[int], pitches: Iterable[Pitch], bookings: Iterable[Booking]
) -> List[Pitch]:
    return available_pitches(fixture.start, fixture.end, age_u, pitches, bookings)
