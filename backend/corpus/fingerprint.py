from __future__ import annotations

import re
from datetime import datetime
from typing import Optional

from config import Settings, get_settings
from corpus.hashing import content_hash, sim_hash, sim_hash_similarity
from schemas.fingerprint import (
    DifferenceType,
    DocumentFingerprint,
    DocumentType,
    DuplicateAnalysis,
)

# ---------------------------------------------------------------------------
# Date references
# ---------------------------------------------------------------------------

_DATE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"\d{1,2}[-/]\d{1,2}[-/]\d{2,4}"),       # MM/DD/YYYY, MM-DD-YY
    re.compile(r"\d{4}[-/]\d{1,2}[-/]\d{1,2}"),         # YYYY-MM-DD
    re.compile(
        r"\b(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)\s+\d{1,2},?\s+\d{4}",
        re.IGNORECASE,
    ),
]

# ---------------------------------------------------------------------------
# Document type keywords, checked in priority order
# ---------------------------------------------------------------------------

_TYPE_PATTERNS: list[tuple[DocumentType, re.Pattern[str]]] = [
    (DocumentType.LAB_REPORT, re.compile(r"lab|labrpt|cbc|cmp|bmp|wbc|hemoglobin")),
    (DocumentType.IMAGING, re.compile(r"ct|mri|x-?ray|ultrasound|imaging|radiology|mammogram")),
    (DocumentType.PATHOLOGY, re.compile(r"pathology|biopsy|specimen|histology")),
    (DocumentType.PROGRESS_NOTE, re.compile(r"progress note|soap|assessment|plan|provider")),
    (DocumentType.MEDICATION, re.compile(r"medication|prescription|refill|pharmacy")),
    (DocumentType.DISCHARGE, re.compile(r"discharge|summary|follow-?up instructions")),
    (DocumentType.CORRESPONDENCE, re.compile(r"letter|correspondence|referral")),
]

_TYPE_SAMPLE_CHARS = 500


def extract_dates(text: str) -> list[str]:
    """Date-like substrings in order of first appearance, deduplicated."""
    seen: dict[str, None] = {}
    for pattern in _DATE_PATTERNS:
        for match in pattern.finditer(text):
            seen.setdefault(match.group(0), None)
    return list(seen)


def detect_document_type(filename: str, text: str) -> DocumentType:
    sample = f"{filename} {text[:_TYPE_SAMPLE_CHARS]}".lower()
    for doc_type, pattern in _TYPE_PATTERNS:
        if pattern.search(sample):
            return doc_type
    return DocumentType.UNKNOWN


def word_count(text: str) -> int:
    return len(text.split())


def fingerprint(filename: str, scrubbed_text: str) -> DocumentFingerprint:
    """Build the immutable fingerprint of one scrubbed document."""
    return DocumentFingerprint(
        content_hash=content_hash(scrubbed_text),
        sim_hash=sim_hash(scrubbed_text),
        word_count=word_count(scrubbed_text),
        date_references=tuple(extract_dates(scrubbed_text)),
        document_type=detect_document_type(filename, scrubbed_text),
    )


# ---------------------------------------------------------------------------
# Duplicate analysis
# ---------------------------------------------------------------------------


def _within_window(
    date_a: Optional[datetime], date_b: Optional[datetime], hours: float
) -> bool:
    if date_a is None or date_b is None:
        return False
    return abs((date_a - date_b).total_seconds()) / 3600.0 <= hours


def analyze_duplication(
    current: DocumentFingerprint,
    reference: DocumentFingerprint,
    current_date: Optional[datetime] = None,
    reference_date: Optional[datetime] = None,
    settings: Settings | None = None,
) -> DuplicateAnalysis:
    """Classify *current* against the earlier *reference* document.

    First match wins: exact content hash, then SimHash near-duplicate,
    then same-event (similar, same type, dated within the encounter
    window), else unique.  Only the first two count as duplicates.
    """
    settings = settings or get_settings()

    if current.content_hash == reference.content_hash:
        return DuplicateAnalysis(
            is_duplicate=True,
            duplicate_of=reference.content_hash,
            similarity=1.0,
            difference_type=DifferenceType.EXACT,
        )

    similarity = sim_hash_similarity(current.sim_hash, reference.sim_hash)

    if similarity >= settings.near_duplicate_similarity:
        return DuplicateAnalysis(
            is_duplicate=True,
            duplicate_of=reference.content_hash,
            similarity=similarity,
            difference_type=DifferenceType.NEAR_DUPLICATE,
        )

    if (
        similarity >= settings.same_event_similarity
        and current.document_type == reference.document_type
        and _within_window(current_date, reference_date, settings.same_event_window_hours)
    ):
        return DuplicateAnalysis(
            is_duplicate=False,
            duplicate_of=reference.content_hash,
            similarity=similarity,
            difference_type=DifferenceType.SAME_EVENT,
        )

    return DuplicateAnalysis(
        is_duplicate=False,
        similarity=similarity,
        difference_type=DifferenceType.UNIQUE,
    )
