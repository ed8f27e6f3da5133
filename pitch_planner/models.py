from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

HomeAway = Literal["home", "away", "unknown"]
PitchType = Literal["full_size", "compact"]
BookingStatus = Literal["requested", "approved", "rejected", "cancelled"]

# Store rows use the club's German surface names.
_PITCH_TYPE_ALIASES = {
    "grossfeld": "full_size",
    "großfeld": "full_size",
    "kompakt": "compact",
    "kleinfeld": "compact",
}


class Fixture(BaseModel):
    model_config = ConfigDict(frozen=True)

    uid: str
    summary: str
    start: datetime  # timezone-aware
    end: datetime
    location: Optional[str] = None
    home_away: HomeAway = "unknown"


class Pitch(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    type: PitchType

    @field_validator("type", mode="before")
    @classmethod
    def _normalise_type(cls, v):
        if isinstance(v, str):
            key = v.strip().lower()
            return _PITCH_TYPE_ALIASES.get(key, key)
        return v


class LocalTeam(BaseModel):
    id: str
    name: str
    age_u: Optional[int] = None


class ExternalTeam(BaseModel):
    """A league team as listed by the association, with its fixture feed."""

    id: str
    club_id: str
    name: str
    age_u: Optional[int] = None
    ics_url: Optional[str] = None
    home_only: Optional[bool] = None


class Club(BaseModel):
    id: str
    name: str


class Booking(BaseModel):
    id: str
    pitch_id: str
    start_at: datetime
    end_at: datetime
    status: BookingStatus = "requested"
    note: Optional[str] = None
    team_id: Optional[str] = None
    created_by: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def _lower_status(cls, v):
        return v.strip().lower() if isinstance(v, str) else v


class BookingDraft(BaseModel):
    """A booking row before the store has assigned it an id."""

    pitch_id: str
    start_at: datetime
    end_at: datetime
    status: BookingStatus = "approved"
    note: str = ""
    team_id: Optional[str] = None
    created_by: Optional[str] = None


class PlannedFixture(BaseModel):
    fixture: Fixture
    available: List[Pitch] = Field(default_factory=list)
    booking_id: Optional[str] = None
    booked_pitch_id: Optional[str] = None
    default_pitch_id: Optional[str] = None

    @property
    def is_booked(self) -> bool:
        return self.booking_id is not None

    @property
    def can_book(self) -> bool:
        # Nothing to offer once booked or when no pitch is free.
        return not self.is_booked and bool(self.available)
