"""Tolerant reader for association fixture feeds (iCalendar VEVENT records).

Only the handful of properties needed to plan a pitch are read. Records that
lack any of UID, SUMMARY, DTSTART or DTEND are dropped without complaint:
third-party feeds regularly ship half-filled events.
"""
from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Iterable, List, Optional
from zoneinfo import ZoneInfo

from .models import Fixture

logger = logging.getLogger(__name__)

BEGIN_RECORD = "BEGIN:VEVENT"
END_RECORD = "END:VEVENT"

_DT_RE = re.compile(r"^(\d{4})(\d{2})(\d{2})T(\d{2})(\d{2})(\d{2})(Z)?$")
_TEXT_ESCAPE_RE = re.compile(r"\\([\\,;nN])")


def unfold_lines(raw: str) -> List[str]:
    """Join continuation lines (leading space or tab) onto the previous line."""
    out: List[str] = []
    for line in raw.replace("\r\n", "\n").replace("\r", "\n").split("\n"):
        if line[:1] in (" ", "\t") and out:
            out[-1] += line.lstrip(" \t")
        else:
            out.append(line)
    return out


def split_property(line: str) -> tuple[str, str]:
    """Return (NAME, value) for `NAME[;params]:value`.

    A colon inside a double-quoted parameter value does not end the name part.
    Lines without a colon yield an empty name.
    """
    in_quotes = False
    for idx, ch in enumerate(line):
        if ch == '"':
            in_quotes = not in_quotes
        elif ch == ":" and not in_quotes:
            name = line[:idx].split(";", 1)[0]
            return name.strip().upper(), line[idx + 1 :]
    return "", ""


def unescape_text(value: str) -> str:
    def _sub(m: re.Match) -> str:
        ch = m.group(1)
        return "\n" if ch in "nN" else ch

    return _TEXT_ESCAPE_RE.sub(_sub, value)


def parse_ics_datetime(value: str, tz: Optional[ZoneInfo] = None) -> Optional[datetime]:
    """Parse `YYYYMMDDTHHMMSS[Z]`.

    With the `Z` suffix the instant is UTC; otherwise it is local civil time,
    of `tz` if given, else of the machine. Anything else returns None.
    """
    m = _DT_RE.match(value.strip())
    if not m:
        return None
    y, mo, d, h, mi, s, z = m.groups()
    try:
        naive = datetime(int(y), int(mo), int(d), int(h), int(mi), int(s))
    except ValueError:
        return None
    if z:
        return naive.replace(tzinfo=timezone.utc)
    if tz is not None:
        return naive.replace(tzinfo=tz)
    return naive.astimezone()


def parse_lines(lines: Iterable[str], tz: Optional[ZoneInfo] = None) -> List[Fixture]:
    fixtures: List[Fixture] = []
    in_record = False
    dropped = 0

    uid = summary = location = ""
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    for line in lines:
        if line.startswith(BEGIN_RECORD):
            in_record = True
            uid = summary = location = ""
            start = end = None
            continue
        if line.startswith(END_RECORD):
            if in_record:
                if uid and summary and start and end:
                    fixtures.append(
                        Fixture(uid=uid, summary=summary, start=start, end=end, location=location or None)
                    )
                else:
                    dropped += 1
            in_record = False
            continue
        if not in_record:
            continue

        name, value = split_property(line)
        if name == "UID":
            uid = value.strip()
        elif name == "SUMMARY":
            summary = unescape_text(value).strip()
        elif name == "LOCATION":
            location = unescape_text(value).strip()
        elif name == "DTSTART":
            start = parse_ics_datetime(value, tz)
        elif name == "DTEND":
            end = parse_ics_datetime(value, tz)

    if dropped:
        logger.debug("dropped %d incomplete VEVENT records", dropped)
    return fixtures


def parse_ics(text: str, tz: Optional[ZoneInfo] = None) -> List[Fixture]:
    """Parse feed text into fixtures, in feed order."""
    return parse_lines(unfold_lines(text), tz)
