from __future__ import annotations

import logging
import pathlib
from datetime import datetime, timedelta
from typing import Callable, Iterable, List, Optional

from icalendar import Calendar, Event
from pydantic import BaseModel

from .adapters.store import BookingStore
from .availability import available_for_fixture
from .classify import classify_fixtures, filter_home
from .errors import PitchPlannerError
from .ics_parser import parse_ics
from .models import Booking, Club, ExternalTeam, Fixture, LocalTeam, Pitch, PlannedFixture
from .reconcile import BookingReconciler, Window, linked_bookings, resolve_local_team_id
from .utils import ensure_dir, iso_z, local_zone, now_utc, to_local_date_time

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_DAYS = 30
PRODID = "-//pitch-planner//DE"

Fetch = Callable[[str], str]


class Plan(BaseModel):
    club: Club
    team: ExternalTeam
    window_start: datetime
    window_end: datetime
    fixtures: List[PlannedFixture]

    def find(self, uid: str) -> Optional[PlannedFixture]:
        return next((p for p in self.fixtures if p.fixture.uid == uid), None)


def booking_window(fixtures: Iterable[Fixture], now: Optional[datetime] = None) -> Window:
    """Earliest start to latest end; the next 30 days when there is nothing to span."""
    fixtures = list(fixtures)
    if not fixtures:
        now = now or now_utc()
        return now, now + timedelta(days=DEFAULT_WINDOW_DAYS)
    return min(f.start for f in fixtures), max(f.end for f in fixtures)


def plan_fixtures(
    fixtures: Iterable[Fixture],
    age_u: Optional[int],
    pitches: List[Pitch],
    bookings: List[Booking],
) -> List[PlannedFixture]:
    """Annotate fixtures with free pitches, linked bookings and a default pitch.

    The default is the booked pitch for linked fixtures, otherwise the first
    free pitch.
    """
    linked = linked_bookings(bookings)
    planned: List[PlannedFixture] = []
    for f in fixtures:
        avail = available_for_fixture(f, age_u, pitches, bookings)
        booking = linked.get(f.uid)
        if booking is not None:
            default = booking.pitch_id
        else:
            default = avail[0].id if avail else None
        planned.append(
            PlannedFixture(
                fixture=f,
                available=avail,
                booking_id=booking.id if booking else None,
                booked_pitch_id=booking.pitch_id if booking else None,
                default_pitch_id=default,
            )
        )
    return planned


class Planner:
    """Runs one load cycle for a league team and books its home fixtures.

    `enabled` and `is_admin` come from configuration and the caller's role;
    the planner never looks them up itself.
    """

    def __init__(
        self,
        store: BookingStore,
        pitches: List[Pitch],
        local_teams: List[LocalTeam],
        fetch: Fetch,
        enabled: bool = True,
        include_unknown: bool = True,
        tz_name: Optional[str] = None,
    ) -> None:
        self.store = store
        self.pitches = pitches
        self.local_teams = local_teams
        self.fetch = fetch
        self.enabled = enabled
        self.include_unknown = include_unknown
        self.tz_name = tz_name
        self.reconciler = BookingReconciler(store)

    def _require_enabled(self) -> None:
        if not self.enabled:
            raise PitchPlannerError("league planning is disabled, set feature_flags.enable_bfv")

    def load(self, club: Club, team: ExternalTeam, home_only: Optional[bool] = None) -> Plan:
        self._require_enabled()
        if not team.ics_url:
            raise PitchPlannerError(f"no feed url configured for team {team.name!r}")
        if home_only is None:
            home_only = team.home_only if team.home_only is not None else True

        text = self.fetch(team.ics_url)
        parsed = parse_ics(text, local_zone(self.tz_name))
        classified = classify_fixtures(club.name, team.name, parsed)
        fixtures = filter_home(classified, home_only=home_only, include_unknown=self.include_unknown)
        logger.info(
            "%s: %d fixtures in feed, %d after home filter", team.name, len(parsed), len(fixtures)
        )

        start, end = booking_window(fixtures)
        self.reconciler.window = (start, end)
        bookings = self.store.query_range(start, end)
        planned = plan_fixtures(fixtures, team.age_u, self.pitches, bookings)
        return Plan(club=club, team=team, window_start=start, window_end=end, fixtures=planned)

    def book(
        self,
        plan: Plan,
        uid: str,
        pitch_id: Optional[str] = None,
        is_admin: bool = False,
        created_by: Optional[str] = None,
    ) -> str:
        self._require_enabled()
        if not is_admin:
            raise PitchPlannerError("only admins can book league fixtures")
        item = plan.find(uid)
        if item is None:
            raise PitchPlannerError(f"fixture {uid} is not part of the loaded plan")
        pitch_id = pitch_id or item.default_pitch_id
        if not pitch_id:
            raise PitchPlannerError(f"no free pitch for fixture {uid}")
        allowed = {p.id for p in item.available}
        if item.booked_pitch_id:
            allowed.add(item.booked_pitch_id)
        if pitch_id not in allowed:
            raise PitchPlannerError(f"pitch {pitch_id} is not free for fixture {uid}")
        local_team_id = resolve_local_team_id(self.local_teams, plan.team.age_u, plan.team.name)
        return self.reconciler.book(
            item.fixture, pitch_id, local_team_id, created_by=created_by, team_name=plan.team.name
        )

    def undo(self, plan: Plan, uid: str, is_admin: bool = False) -> None:
        self._require_enabled()
        if not is_admin:
            raise PitchPlannerError("only admins can undo league bookings")
        self.reconciler.undo(uid, (plan.window_start, plan.window_end))


def report_rows(plan: Plan, pitches: List[Pitch], tz_name: Optional[str] = None) -> List[dict]:
    names = {p.id: p.name for p in pitches}
    rows: List[dict] = []
    for item in plan.fixtures:
        f = item.fixture
        date_str, start_str = to_local_date_time(f.start, tz_name)
        _, end_str = to_local_date_time(f.end, tz_name)
        rows.append(
            {
                "uid": f.uid,
                "date": date_str,
                "summary": f.summary,
                "home": {"home": "Ja", "away": "Nein"}.get(f.home_away, "?"),
                "from": start_str,
                "to": end_str,
                "start_at": iso_z(f.start),
                "end_at": iso_z(f.end),
                "free_pitches": [p.name for p in item.available],
                "default_pitch": names.get(item.default_pitch_id or "", item.default_pitch_id),
                "booked_pitch": names.get(item.booked_pitch_id or "", item.booked_pitch_id),
                "booking_id": item.booking_id,
                "can_book": item.can_book,
            }
        )
    return rows


def export_ics(plan: Plan, path: str | pathlib.Path, pitches: List[Pitch]) -> None:
    names = {p.id: p.name for p in pitches}
    cal = Calendar()
    cal.add("prodid", PRODID)
    cal.add("version", "2.0")
    cal.add("x-wr-calname", f"{plan.club.name} {plan.team.name}")
    for item in plan.fixtures:
        f = item.fixture
        ev = Event()
        ev.add("uid", f.uid)
        ev.add("summary", f.summary)
        ev.add("dtstart", f.start)
        ev.add("dtend", f.end)
        pitch = item.booked_pitch_id or item.default_pitch_id
        if pitch:
            ev.add("location", names.get(pitch, pitch))
        elif f.location:
            ev.add("location", f.location)
        ev.add("status", "CONFIRMED" if item.is_booked else "TENTATIVE")
        cal.add_component(ev)
    path = pathlib.Path(path)
    ensure_dir(path.parent)
    path.write_bytes(cal.to_ical())
