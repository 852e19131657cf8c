from __future__ import annotations

from fastapi import APIRouter

from schemas.api import TimelineRequest
from schemas.timeline import Timeline
from services.timeline_service import build_timeline

router = APIRouter()


@router.post("/", response_model=Timeline)
def create_timeline(body: TimelineRequest):
    """Order scrubbed documents chronologically and flag duplicates."""
    return build_timeline(body.files, reverse_chronological=body.reverse_chronological)
