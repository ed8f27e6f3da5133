"""Exactly-one booking per league fixture.

A booking belongs to a fixture when its note carries ``[BFV_UID:<uid>]``.
The tag is the only link: the booking table has no fixture column, so the
reconciler finds linked bookings by scanning notes in a time window.
"""
from __future__ import annotations

import logging
import re
import threading
from collections import defaultdict
from datetime import datetime
from typing import Dict, Iterable, Optional, Tuple

from .adapters.store import OVERLAP_CONSTRAINT, BookingStore
from .errors import Collision, NoLocalTeam, StoreConstraintError
from .models import Booking, BookingDraft, Fixture, LocalTeam

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"\[BFV_UID:([^\]]+)\]", re.IGNORECASE)

Window = Tuple[Optional[datetime], Optional[datetime]]


def fixture_tag(uid: str) -> str:
    if not uid or "]" in uid:
        raise ValueError(f"fixture uid cannot be embedded in a tag: {uid!r}")
    return f"[BFV_UID:{uid}]"


def find_fixture_uid(note: Optional[str]) -> Optional[str]:
    if not note:
        return None
    m = _TAG_RE.search(note)
    return m.group(1) if m else None


def booking_note(fixture: Fixture) -> str:
    return f"[BFV] {fixture.summary}\n{fixture_tag(fixture.uid)}"


def linked_bookings(bookings: Iterable[Booking]) -> Dict[str, Booking]:
    """Map fixture uid to its booking; the first booking wins on duplicates."""
    out: Dict[str, Booking] = {}
    for b in bookings:
        uid = find_fixture_uid(b.note)
        if uid and uid not in out:
            out[uid] = b
    return out


def resolve_local_team_id(teams: Iterable[LocalTeam], age_u: Optional[int], team_name: str) -> Optional[str]:
    """Pick the club's own team for a league team.

    Same age group first, then a local team whose name contains the league
    team's name (case-insensitive).
    """
    teams = list(teams)
    if age_u is not None:
        for t in teams:
            if t.age_u == age_u:
                return t.id
    needle = (team_name or "").strip().lower()
    if not needle:
        return None
    for t in teams:
        if needle in (t.name or "").lower():
            return t.id
    return None


class BookingReconciler:
    def __init__(self, store: BookingStore, window: Window = (None, None)) -> None:
        self.store = store
        self.window = window
        self._locks: Dict[str, threading.Lock] = defaultdict(threading.Lock)
        self._locks_guard = threading.Lock()

    def _lock_for(self, uid: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks[uid]

    def _window_for(self, fixture: Fixture) -> Window:
        """The reconciler window stretched to cover the fixture's own interval."""
        start, end = self.window
        if start is not None:
            start = min(start, fixture.start)
        if end is not None:
            end = max(end, fixture.end)
        return start, end

    def locate_booking(self, fixture_id: str, window: Optional[Window] = None) -> Optional[str]:
        start, end = window or self.window
        for b in self.store.query_range(start, end):
            if find_fixture_uid(b.note) == fixture_id:
                return b.id
        return None

    def book(
        self,
        fixture: Fixture,
        pitch_id: str,
        local_team_id: Optional[str],
        created_by: Optional[str] = None,
        team_name: str = "",
    ) -> str:
        note = booking_note(fixture)

        with self._lock_for(fixture.uid):
            # A rescheduled fixture keeps its booking at the old time.
            existing = self.locate_booking(fixture.uid, self._window_for(fixture))
            if existing is not None:
                logger.info("fixture %s already booked as %s", fixture.uid, existing)
                return existing
            if not local_team_id:
                raise NoLocalTeam(team_name)

            draft = BookingDraft(
                pitch_id=pitch_id,
                start_at=fixture.start,
                end_at=fixture.end,
                status="approved",
                note=note,
                team_id=local_team_id,
                created_by=created_by,
            )
            try:
                booking_id = self.store.insert(draft)
            except StoreConstraintError as e:
                if e.constraint == OVERLAP_CONSTRAINT:
                    raise Collision(
                        f"pitch {pitch_id} is taken between {fixture.start:%H:%M} and {fixture.end:%H:%M}, "
                        "choose another pitch or time"
                    ) from e
                raise

        logger.info("booked fixture %s on pitch %s as %s", fixture.uid, pitch_id, booking_id)
        return booking_id

    def undo(self, fixture_id: str, window: Optional[Window] = None) -> None:
        with self._lock_for(fixture_id):
            booking_id = self.locate_booking(fixture_id, window)
            if booking_id is None:
                logger.debug("nothing to undo for fixture %s", fixture_id)
                return
            self.store.delete(booking_id)
        logger.info("removed booking %s for fixture %s", booking_id, fixture_id)
