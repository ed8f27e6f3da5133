from __future__ import annotations

from typing import Iterable, List, Optional

from .models import Fixture, HomeAway
from .normalise import build_match_tokens, contains_any, split_home_away


def classify_summary(summary: str, location: Optional[str], tokens: List[str]) -> HomeAway:
    """Home/away status of one fixture for the club described by `tokens`.

    Feeds list the home side first. When both sides match (a reserve-team
    derby, or two clubs sharing a name part) the left side is still taken
    as home; when neither matches the fixture stays unknown.
    """
    sides = split_home_away(summary)
    if sides is None:
        return "home" if contains_any(location, tokens) else "unknown"

    left, right = sides
    left_match = contains_any(left, tokens)
    right_match = contains_any(right, tokens)
    if left_match:
        return "home"
    if right_match:
        return "away"
    return "unknown"


def classify_fixtures(club_name: str, team_name: str, fixtures: Iterable[Fixture]) -> List[Fixture]:
    tokens = build_match_tokens(club_name, team_name)
    return [
        f.model_copy(update={"home_away": classify_summary(f.summary, f.location, tokens)})
        for f in fixtures
    ]


def filter_home(fixtures: Iterable[Fixture], home_only: bool = True, include_unknown: bool = True) -> List[Fixture]:
    """Drop away fixtures when `home_only` is set.

    Unknown fixtures pass unless `include_unknown` is False: hiding a real
    home game costs more than one extra row to review.
    """
    if not home_only:
        return list(fixtures)
    allowed = {"home", "unknown"} if include_unknown else {"home"}
    return [f for f in fixtures if f.home_away in allowed]
