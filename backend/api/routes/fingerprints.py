from __future__ import annotations

from fastapi import APIRouter

from corpus.fingerprint import analyze_duplication, fingerprint
from schemas.api import CompareRequest, FingerprintRequest
from schemas.fingerprint import DocumentFingerprint, DuplicateAnalysis

router = APIRouter()


@router.post("/", response_model=DocumentFingerprint)
def create_fingerprint(body: FingerprintRequest):
    """Fingerprint an already-scrubbed document."""
    return fingerprint(body.filename, body.text)


@router.post("/compare", response_model=DuplicateAnalysis)
def compare_fingerprints(body: CompareRequest):
    """Classify ``first`` against the earlier ``second`` document."""
    return analyze_duplication(body.first, body.second, body.first_date, body.second_date)
