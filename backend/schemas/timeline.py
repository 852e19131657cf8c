from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from schemas.fingerprint import DocumentFingerprint, DuplicateAnalysis


class ProcessedFile(BaseModel):
    """A document after scrubbing, as handed over by the caller's store."""

    id: str
    filename: str
    scrubbed_text: str | None = None
    stage: str = "scrubbed"


class TimelineDocument(BaseModel):
    id: str
    filename: str
    date: datetime
    document_number: int = Field(..., ge=1)
    fingerprint: DocumentFingerprint
    duplicate_analysis: DuplicateAnalysis | None = None
    content: str


class DateRange(BaseModel):
    earliest: datetime
    latest: datetime


class TimelineSummary(BaseModel):
    total_documents: int = Field(..., ge=0)
    unique_documents: int = Field(..., ge=0)
    duplicates: int = Field(..., ge=0)
    date_range: DateRange | None = None
    document_types: dict[str, int] = Field(default_factory=dict)


class Timeline(BaseModel):
    documents: list[TimelineDocument] = Field(default_factory=list)
    summary: TimelineSummary
