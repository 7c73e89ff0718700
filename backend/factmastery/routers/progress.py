"""
Fact Progress API Router

Endpoints for attempt submission and track progress.

Endpoints:
- GET /api/progress/{track_id} - Track progress for a student
- POST /api/progress/{track_id} - Submit an attempt batch
- DELETE /api/progress/{track_id} - Reset a student's track progress
"""

import logging
from datetime import date

from fastapi import APIRouter, Depends, Query, Request

from factmastery.dependencies import get_fact_progress_service, get_practice_date
from factmastery.middleware.rate_limit import limit_attempts
from factmastery.models.progress import (
    ResetProgressResponse,
    SubmitAttemptsRequest,
    TrackProgressResponse,
)
from factmastery.services.learning import FactProgressService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/progress", tags=["progress"])


@router.get("/{track_id}", response_model=TrackProgressResponse)
async def get_track_progress(
    track_id: str,
    user_id: str = Query(..., min_length=1),
    service: FactProgressService = Depends(get_fact_progress_service),
) -> TrackProgressResponse:
    """
    Get a student's progress on a track.

    Returns an empty progress object if the student has not practiced the
    track yet.
    """
    view = await service.get_track_progress(user_id, track_id)
    return TrackProgressResponse.from_view(view)


@router.post("/{track_id}", response_model=TrackProgressResponse)
@limit_attempts
async def submit_attempts(
    request: Request,
    track_id: str,
    body: SubmitAttemptsRequest,
    practice_date: date = Depends(get_practice_date),
    service: FactProgressService = Depends(get_fact_progress_service),
) -> TrackProgressResponse:
    """
    Submit an attempt batch.

    Each fact is advanced through the mastery state machine and daily goals
    are credited for qualifying practice. If the student has a focus track
    pinned, it replaces ``track_id``. The whole batch is rejected with 422
    if any fact lies outside the track.
    """
    attempts = {fact_id: entry.to_input() for fact_id, entry in body.facts.items()}
    view = await service.submit_attempts(body.user_id, track_id, attempts, practice_date)
    return TrackProgressResponse.from_view(view)


@router.delete("/{track_id}", response_model=ResetProgressResponse)
async def reset_track_progress(
    track_id: str,
    user_id: str = Query(..., min_length=1),
    service: FactProgressService = Depends(get_fact_progress_service),
) -> ResetProgressResponse:
    """Delete a student's progress and all fact states on a track."""
    removed = await service.reset_track_progress(user_id, track_id)
    return ResetProgressResponse(track_id=track_id, facts_removed=removed)
