"""
Curriculum Reference Data

Static tables describing the fact curriculum:

- Tracks and the inclusive range of fact numbers each one contains
- Grade-based fluency targets (seconds per answer)

Fact ids have the form ``FACT<n>``; a fact belongs to a track when ``n``
lies inside the track's range.

Usage:
    from factmastery.curriculum import get_track, get_fluency_target

    track = get_track("TRACK5")
    track.contains("FACT400")  # True
    get_fluency_target(2)  # 2.0
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

from factmastery.config import settings

logger = logging.getLogger(__name__)

# Focus track value meaning "no override"
ALL_TRACKS = "ALL"

_FACT_ID_PATTERN = re.compile(r"^FACT(\d+)$")


@dataclass(frozen=True)
class Track:
    """A curriculum track and its inclusive fact-number range."""

    track_id: str
    name: str
    first_fact: int
    last_fact: int

    @property
    def size(self) -> int:
        return self.last_fact - self.first_fact + 1

    def contains(self, fact_id: str) -> bool:
        number = parse_fact_number(fact_id)
        return number is not None and self.first_fact <= number <= self.last_fact


TRACKS: dict[str, Track] = {
    track.track_id: track
    for track in (
        Track("TRACK1", "Addition Facts", 1, 99),
        Track("TRACK2", "Subtraction Facts", 100, 195),
        Track("TRACK3", "Multiplication Facts", 196, 279),
        Track("TRACK4", "Division Facts", 280, 367),
        Track("TRACK5", "Division Facts (Up to 12)", 368, 511),
        Track("TRACK6", "Addition Facts (Sums up to 20)", 512, 742),
        Track("TRACK7", "Multiplication Facts (Factors up to 12)", 743, 911),
        Track("TRACK8", "Subtraction Facts (Up to 20)", 912, 1142),
        Track("TRACK9", "Addition (Single-Digit)", 1143, 1242),
        Track("TRACK10", "Subtraction (Single-Digit)", 1243, 1407),
        Track("TRACK11", "Multiplication (Single-digit)", 1408, 1507),
        Track("TRACK12", "Addition Within 10 (Sums up to 10)", 1508, 1573),
    )
}

# Seconds per answer a student must reach to count as fluent, by grade
FLUENCY_TARGETS: dict[int, float] = {
    **{grade: 2.0 for grade in range(0, 4)},
    **{grade: 1.5 for grade in range(4, 13)},
}


def parse_fact_number(fact_id: str) -> Optional[int]:
    """Return the numeric part of a ``FACT<n>`` id, or None if malformed."""
    match = _FACT_ID_PATTERN.match(fact_id or "")
    if not match:
        return None
    return int(match.group(1))


def get_track(track_id: str) -> Optional[Track]:
    return TRACKS.get(track_id)


def get_fluency_target(grade: Optional[int]) -> float:
    """
    Fluency target in seconds for a grade.

    Unknown or missing grades fall back to the default grade's target.
    """
    if grade is not None and grade in FLUENCY_TARGETS:
        return FLUENCY_TARGETS[grade]
    if grade is not None:
        logger.warning(f"Unknown grade {grade}, using grade {settings.DEFAULT_GRADE} fluency target")
    return FLUENCY_TARGETS[settings.DEFAULT_GRADE]
