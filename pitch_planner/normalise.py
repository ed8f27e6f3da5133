from __future__ import annotations

import re
import unicodedata
from typing import List, Optional, Tuple

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")
_AGE_TOKEN_RE = re.compile(r"^u\d{1,2}$")
# First hyphen or en dash with whitespace on both sides.
_SIDE_SPLIT_RE = re.compile(r"\s+[-–]\s+")

_UMLAUTS = {"ä": "ae", "ö": "oe", "ü": "ue", "ß": "ss"}

MIN_TOKEN_LEN = 3

# Club-type abbreviations, the home city and generic team suffixes: they are
# shared by too many clubs in one league to tell the sides apart.
STOPWORDS = frozenset(
    {
        "fc",
        "tsv",
        "sv",
        "sc",
        "sg",
        "jfg",
        "ev",
        "e",
        "v",
        "muenchen",
        "munchen",
        "muench",
        "m",
        "ii",
        "iii",
        "iv",
        "i",
        "u",
        "junioren",
        "juniorinnen",
    }
)


def strip_diacritics(s: str) -> str:
    decomposed = unicodedata.normalize("NFKD", s)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def norm_text(s: Optional[str]) -> str:
    s = (s or "").lower()
    for src, dst in _UMLAUTS.items():
        s = s.replace(src, dst)
    s = strip_diacritics(s)
    s = _NON_ALNUM_RE.sub(" ", s)
    return s.strip()


def build_match_tokens(*names: Optional[str]) -> List[str]:
    """Distinct match tokens for the given names, in first-seen order."""
    tokens: List[str] = []
    for name in names:
        for word in norm_text(name).split(" "):
            if not word or word in STOPWORDS:
                continue
            if _AGE_TOKEN_RE.match(word):
                continue
            if len(word) < MIN_TOKEN_LEN:
                continue
            if word not in tokens:
                tokens.append(word)
    return tokens


def contains_any(text: Optional[str], tokens: List[str]) -> bool:
    if not tokens:
        return False
    norm = norm_text(text)
    return any(tok in norm for tok in tokens)


def split_home_away(summary: str) -> Optional[Tuple[str, str]]:
    """Split "Home - Away, Competition" into its two sides.

    Returns None when the team part carries no spaced hyphen or en dash, or
    when one of the sides is empty.
    """
    team_part = summary.split(",", 1)[0]
    parts = _SIDE_SPLIT_RE.split(team_part, maxsplit=1)
    if len(parts) != 2:
        return None
    left, right = parts[0].strip(), parts[1].strip()
    if not left or not right:
        return None
    return left, right
