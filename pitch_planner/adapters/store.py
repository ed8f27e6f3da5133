from __future__ import annotations

import fcntl
import logging
import pathlib
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import Iterable, Iterator, List, Optional, Protocol

from ..availability import is_blocking, overlaps
from ..errors import StoreConstraintError
from ..models import Booking, BookingDraft
from ..utils import ensure_dir, read_json, write_json

logger = logging.getLogger(__name__)

OVERLAP_CONSTRAINT = "bookings_no_overlap"


class BookingStore(Protocol):
    def query_range(self, start: Optional[datetime], end: Optional[datetime]) -> List[Booking]:
        ...

    def insert(self, draft: BookingDraft) -> str:
        ...

    def delete(self, booking_id: str) -> None:
        ...


class InMemoryBookingStore:
    """Booking table with the club database's exclusion constraint.

    Two blocking bookings (requested/approved) on the same pitch must not
    overlap; rejected and cancelled rows are ignored by the constraint.
    """

    def __init__(self, bookings: Iterable[Booking] = ()) -> None:
        self._rows: dict[str, Booking] = {b.id: b for b in bookings}
        self._lock = threading.Lock()

    def query_range(self, start: Optional[datetime], end: Optional[datetime]) -> List[Booking]:
        with self._lock:
            rows = list(self._rows.values())
        out = [
            b
            for b in rows
            if (start is None or b.end_at > start) and (end is None or b.start_at < end)
        ]
        out.sort(key=lambda b: (b.start_at, b.id))
        return out

    def insert(self, draft: BookingDraft) -> str:
        if draft.end_at <= draft.start_at:
            raise StoreConstraintError("bookings_valid_interval", "booking must end after it starts")
        booking = Booking(id=uuid.uuid4().hex, **draft.model_dump())
        with self._lock:
            if is_blocking(booking):
                for other in self._rows.values():
                    if (
                        other.pitch_id == booking.pitch_id
                        and is_blocking(other)
                        and overlaps(booking.start_at, booking.end_at, other.start_at, other.end_at)
                    ):
                        raise StoreConstraintError(
                            OVERLAP_CONSTRAINT,
                            f"pitch {booking.pitch_id} already booked by {other.id}",
                        )
            rows = dict(self._rows)
            rows[booking.id] = booking
            self._persist(rows)
            self._rows = rows
        return booking.id

    def delete(self, booking_id: str) -> None:
        with self._lock:
            if booking_id not in self._rows:
                return
            rows = {k: v for k, v in self._rows.items() if k != booking_id}
            self._persist(rows)
            self._rows = rows

    def all(self) -> List[Booking]:
        return self.query_range(None, None)

    def _persist(self, rows: dict[str, Booking]) -> None:
        pass


class JsonFileBookingStore(InMemoryBookingStore):
    """Booking table kept in a JSON file shared by several processes.

    Every insert and delete re-reads the file under an exclusive lock on a
    sidecar ``.lock`` file, so the overlap check always sees the rows other
    processes wrote.
    """

    def __init__(self, path: str | pathlib.Path) -> None:
        self.path = pathlib.Path(path)
        self.lock_path = self.path.with_name(self.path.name + ".lock")
        super().__init__()
        self._reload()
        logger.debug("loaded %d bookings from %s", len(self._rows), self.path)

    @contextmanager
    def _file_lock(self) -> Iterator[None]:
        ensure_dir(self.lock_path.parent)
        with open(self.lock_path, "a+b") as fh:
            fcntl.flock(fh.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(fh.fileno(), fcntl.LOCK_UN)

    def _reload(self) -> None:
        raw = read_json(self.path, default=[]) or []
        rows = {b.id: b for b in (Booking(**row) for row in raw)}
        with self._lock:
            self._rows = rows

    def query_range(self, start: Optional[datetime], end: Optional[datetime]) -> List[Booking]:
        self._reload()
        return super().query_range(start, end)

    def insert(self, draft: BookingDraft) -> str:
        with self._file_lock():
            self._reload()
            return super().insert(draft)

    def delete(self, booking_id: str) -> None:
        with self._file_lock():
            self._reload()
            super().delete(booking_id)

    def _persist(self, rows: dict[str, Booking]) -> None:
        # Runs under both locks before the new rows become visible.
        write_json(self.path, [b.model_dump(mode="json") for b in rows.values()])
