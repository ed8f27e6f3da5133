from __future__ import annotations

import os
import pathlib
import tempfile
from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

import orjson

GERMAN_DATE_FMT = "%d.%m.%Y"
GERMAN_TIME_FMT = "%H:%M"


def ensure_dir(p: str | pathlib.Path) -> None:
    pathlib.Path(p).mkdir(parents=True, exist_ok=True)


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def iso_z(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def write_json(path: str | pathlib.Path, data) -> None:
    """Write JSON via a temporary file so readers never see a half-written file."""
    path = pathlib.Path(path)
    ensure_dir(path.parent)
    payload = orjson.dumps(data, option=orjson.OPT_INDENT_2 | orjson.OPT_SORT_KEYS)
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=path.name, suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(payload)
        os.replace(tmp, path)
    except BaseException:
        pathlib.Path(tmp).unlink(missing_ok=True)
        raise


def read_json(path: str | pathlib.Path, default=None):
    path = pathlib.Path(path)
    if not path.exists():
        return default
    return orjson.loads(path.read_bytes())


def read_env(name: str, default: str | None = None) -> str | None:
    return os.environ.get(name, default)


def env_flag(name: str) -> Optional[bool]:
    raw = read_env(name)
    if raw is None:
        return None
    return raw.strip().lower() in ("1", "true", "yes", "on")


def local_zone(tz_name: str | None) -> ZoneInfo | None:
    return ZoneInfo(tz_name) if tz_name else None


def to_local_date_time(dt: datetime, tz_name: str | None = None) -> tuple[str, str]:
    tz = local_zone(tz_name)
    local = dt.astimezone(tz) if tz else dt.astimezone()
    return local.strftime(GERMAN_DATE_FMT), local.strftime(GERMAN_TIME_FMT)
