"""
Fluency Classifier

Maps a student's average response time to the fluency stage it earns.

Stage boundaries (seconds per answer, inclusive):

    <= grade target or <= 1.0   mastered
    <= 1.5                      fluency1Practice
    <= 2.0                      fluency1_5Practice
    <= 3.0                      fluency2Practice
    <= 6.0                      fluency3Practice
    otherwise                   fluency6Practice
"""

from typing import Optional

from factmastery.config import settings
from factmastery.enums import FactStatus

# (upper bound in seconds, stage) in ascending order
_STAGE_BOUNDS: tuple[tuple[float, FactStatus], ...] = (
    (1.0, FactStatus.MASTERED),
    (1.5, FactStatus.FLUENCY_1),
    (2.0, FactStatus.FLUENCY_1_5),
    (3.0, FactStatus.FLUENCY_2),
    (6.0, FactStatus.FLUENCY_3),
)


def classify_fluency(
    avg_response_time_sec: Optional[float], target_sec: float
) -> FactStatus:
    """
    Return the fluency stage earned by an average response time.

    Args:
        avg_response_time_sec: Average seconds per answer today. None is
            treated as the slowest tracked time.
        target_sec: The student's grade-level fluency target.

    Returns:
        A fluency stage or FactStatus.MASTERED.
    """
    avg = (
        avg_response_time_sec
        if avg_response_time_sec is not None
        else settings.MISSING_RESPONSE_TIME_SEC
    )

    if avg <= target_sec:
        return FactStatus.MASTERED

    for bound, stage in _STAGE_BOUNDS:
        if avg <= bound:
            return stage
    return FactStatus.FLUENCY_6
