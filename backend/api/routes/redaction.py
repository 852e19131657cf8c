from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from api.dependencies import get_scrubber
from schemas.api import ScrubRequest, ScrubResponse
from scrubber.pipeline import PIIScrubber

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=ScrubResponse)
async def scrub_text(
    body: ScrubRequest,
    scrubber: PIIScrubber = Depends(get_scrubber),
):
    """Redact PII/PHI from one document."""
    logger.info("Scrub request: %d chars, regex_only=%s", len(body.text), body.regex_only)
    result = await scrubber.scrub(body.text, regex_only=body.regex_only)
    return ScrubResponse.from_result(result)
