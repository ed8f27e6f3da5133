"""Shared fixtures for pitch planner tests."""

from datetime import datetime, timezone

import pytest

from pitch_planner.adapters.store import InMemoryBookingStore
from pitch_planner.models import Booking, Club, ExternalTeam, Fixture, LocalTeam, Pitch

UTC = timezone.utc

SCENARIO_FEED = "\r\n".join(
    [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        "PRODID:-//BFV//Spielplan//DE",
        "BEGIN:VEVENT",
        "UID:abc123",
        "SUMMARY:FC Stern - SV Gegner, Kreisliga",
        "DTSTART:20260222T140000Z",
        "DTEND:20260222T160000Z",
        "LOCATION:Sportpark Stern, Platz 1",
        "END:VEVENT",
        "END:VCALENDAR",
        "",
    ]
)


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=UTC)


@pytest.fixture
def pitches():
    return [
        Pitch(id="gf-links", name="Großfeld Links", type="GROSSFELD"),
        Pitch(id="gf-mitte", name="Platz Mitte", type="GROSSFELD"),
        Pitch(id="gf-rechts", name="Großfeld Rechts", type="GROSSFELD"),
        Pitch(id="kp-1", name="Kompaktplatz 1", type="KOMPAKT"),
    ]


@pytest.fixture
def fixture_abc():
    return Fixture(
        uid="abc123",
        summary="FC Stern - SV Gegner, Kreisliga",
        start=utc(2026, 2, 22, 14, 0),
        end=utc(2026, 2, 22, 16, 0),
        home_away="home",
    )


@pytest.fixture
def store():
    return InMemoryBookingStore()


@pytest.fixture
def local_teams():
    return [
        LocalTeam(id="t-u11", name="U11 Junioren", age_u=11),
        LocalTeam(id="t-u16", name="U16 Junioren", age_u=16),
    ]


@pytest.fixture
def club():
    return Club(id="stern", name="FC Stern")


@pytest.fixture
def team_u16():
    return ExternalTeam(
        id="stern-u16",
        club_id="stern",
        name="FC Stern U16",
        age_u=16,
        ics_url="https://service.bfv.de/rest/icsexport/team/u16",
        home_only=True,
    )


def booking(id, pitch_id, start, end, status="approved", note=None):
    return Booking(id=id, pitch_id=pitch_id, start_at=start, end_at=end, status=status, note=note)
