from __future__ import annotations

from typing import Optional


class PitchPlannerError(Exception):
    """Base class for failures surfaced to the caller of a planning cycle."""


class FeedUnavailable(PitchPlannerError):
    def __init__(self, message: str, status_code: Optional[int] = None, text: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.text = text


class HostNotAllowed(FeedUnavailable):
    def __init__(self, host: str) -> None:
        super().__init__(f"host not allowed: {host}", status_code=400)
        self.host = host


class NoLocalTeam(PitchPlannerError):
    def __init__(self, team_name: str = "") -> None:
        super().__init__(f"no matching local team for {team_name!r}, check the local team list")
        self.team_name = team_name


class StoreConstraintError(PitchPlannerError):
    """Raised by a booking store when an insert violates a storage constraint."""

    def __init__(self, constraint: str, message: str = "") -> None:
        super().__init__(message or f"constraint violated: {constraint}")
        self.constraint = constraint


class Collision(PitchPlannerError):
    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason
