from __future__ import annotations

import logging
import re
from collections import Counter
from datetime import datetime
from typing import Iterable, Optional

from config import Settings, get_settings
from corpus.fingerprint import analyze_duplication, fingerprint
from schemas.fingerprint import DifferenceType
from schemas.timeline import (
    DateRange,
    ProcessedFile,
    Timeline,
    TimelineDocument,
    TimelineSummary,
)

logger = logging.getLogger(__name__)

DATE_SEARCH_CHARS = 500

_DATE_PATTERNS = [
    re.compile(r"(\d{1,2}[-/]\d{1,2}[-/]\d{4})"),           # MM-DD-YYYY or MM/DD/YYYY
    re.compile(r"(\d{4}[-/]\d{1,2}[-/]\d{1,2})"),           # YYYY-MM-DD
    re.compile(r"(Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)\s+\d{1,2},?\s+\d{4}", re.IGNORECASE),
]

_DATE_FORMATS = [
    "%m-%d-%Y",
    "%m/%d/%Y",
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%b %d %Y",
    "%B %d %Y",
]


def _parse_date(value: str) -> Optional[datetime]:
    cleaned = " ".join(value.replace(",", " ").split())
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt)
        except ValueError:
            continue
    return None


def extract_primary_date(filename: str, content: str) -> Optional[datetime]:
    """Find the document date: filename first, then the start of the content."""
    for source in (filename, content[:DATE_SEARCH_CHARS]):
        for pattern in _DATE_PATTERNS:
            for match in pattern.finditer(source):
                parsed = _parse_date(match.group(0))
                if parsed is not None:
                    return parsed
    return None


def _summarize(documents: list[TimelineDocument]) -> TimelineSummary:
    duplicates = sum(
        1 for d in documents if d.duplicate_analysis is not None and d.duplicate_analysis.is_duplicate
    )
    date_range = None
    if documents:
        dates = [d.date for d in documents]
        date_range = DateRange(earliest=min(dates), latest=max(dates))
    types = Counter(d.fingerprint.document_type.value for d in documents)
    return TimelineSummary(
        total_documents=len(documents),
        unique_documents=len(documents) - duplicates,
        duplicates=duplicates,
        date_range=date_range,
        document_types=dict(types),
    )


def build_timeline(
    files: Iterable[ProcessedFile],
    reverse_chronological: bool = False,
    settings: Settings | None = None,
) -> Timeline:
    """Order scrubbed documents by date and flag duplicates and same-event pairs.

    Each document is compared against every earlier one in the ordering;
    the first duplicate or same-event finding is attached.
    """
    settings = settings or get_settings()
    entries: list[tuple[ProcessedFile, datetime]] = []

    for file in files:
        if not file.scrubbed_text:
            continue
        date = extract_primary_date(file.filename, file.scrubbed_text)
        if date is None:
            logger.warning("No date found for document %s, using current time", file.id)
            date = datetime.now()
        entries.append((file, date))

    entries.sort(key=lambda e: e[1], reverse=reverse_chronological)

    documents: list[TimelineDocument] = []
    for number, (file, date) in enumerate(entries, start=1):
        current_fp = fingerprint(file.filename, file.scrubbed_text)
        analysis = None
        for previous in documents:
            finding = analyze_duplication(
                current_fp, previous.fingerprint, date, previous.date, settings=settings
            )
            if finding.is_duplicate or finding.difference_type == DifferenceType.SAME_EVENT:
                analysis = finding
                break
        documents.append(
            TimelineDocument(
                id=file.id,
                filename=file.filename,
                date=date,
                document_number=number,
                fingerprint=current_fp,
                duplicate_analysis=analysis,
                content=file.scrubbed_text,
            )
        )

    summary = _summarize(documents)
    logger.info(
        "Timeline built: %d documents, %d unique",
        summary.total_documents,
        summary.unique_documents,
    )
    return Timeline(documents=documents, summary=summary)
