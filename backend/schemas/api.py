from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from schemas.dedup import DedupDocumentInput, SelectionCriteria
from schemas.fingerprint import DocumentFingerprint
from schemas.redaction import ScrubResult
from schemas.templates import DocumentInput
from schemas.timeline import ProcessedFile


# --- Redaction Schemas ---

class ScrubRequest(BaseModel):
    text: str = Field(..., max_length=5_000_000)
    regex_only: bool = False


class ScrubResponse(BaseModel):
    text: str
    replacements: dict[str, str] = {}  # original -> placeholder
    count: int = 0
    confidence: float | None = None

    @classmethod
    def from_result(cls, result: ScrubResult) -> "ScrubResponse":
        return cls(**result.model_dump())


# --- Fingerprint Schemas ---

class FingerprintRequest(BaseModel):
    filename: str = Field("", max_length=255)
    text: str


class CompareRequest(BaseModel):
    first: DocumentFingerprint
    second: DocumentFingerprint
    first_date: datetime | None = None
    second_date: datetime | None = None


# --- Template Schemas ---

class TemplateCorpusRequest(BaseModel):
    documents: list[DocumentInput]
    config: dict[str, Any] | None = None  # NGramConfig overrides


# --- Dedup Schemas ---

class DedupRequest(BaseModel):
    documents: list[DedupDocumentInput]
    config: dict[str, Any] | None = None  # EmbeddingConfig overrides
    criteria: SelectionCriteria | None = None


# --- Timeline Schemas ---

class TimelineRequest(BaseModel):
    files: list[ProcessedFile]
    reverse_chronological: bool = False


# --- Health ---

class HealthResponse(BaseModel):
    status: str = "ok"
    ner_model: str
    ner_loaded: bool
    embedding_model: str
    embedding_loaded: bool
