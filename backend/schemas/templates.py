from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, model_validator

from config import Settings, get_settings


# --- Configuration ---

class NGramConfig(BaseModel):
    min_ngram_size: int = Field(2, ge=1)          # lines
    max_ngram_size: int = Field(5, ge=1)
    template_threshold: float = Field(0.3, ge=0.0, le=1.0)
    rare_threshold: float = Field(0.05, ge=0.0, le=1.0)
    normalize_whitespace: bool = True
    lowercase_for_matching: bool = True
    strip_numbers: bool = False
    max_documents_to_sample: int = Field(500, ge=1)
    min_documents_for_template: int = Field(3, ge=1)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_ngram_range(self) -> "NGramConfig":
        if self.min_ngram_size > self.max_ngram_size:
            raise ValueError("min_ngram_size must not exceed max_ngram_size")
        return self

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **overrides: Any) -> "NGramConfig":
        settings = settings or get_settings()
        values: dict[str, Any] = {
            "min_ngram_size": settings.template_min_ngram,
            "max_ngram_size": settings.template_max_ngram,
            "template_threshold": settings.template_threshold,
            "rare_threshold": settings.template_rare_threshold,
            "strip_numbers": settings.template_strip_numbers,
            "max_documents_to_sample": settings.template_max_documents,
            "min_documents_for_template": settings.template_min_documents,
        }
        values.update(overrides)
        return cls(**values)


# --- Inputs and fingerprints ---

class DocumentInput(BaseModel):
    id: str
    content: str
    metadata: dict[str, Any] = Field(default_factory=dict)


@dataclass(frozen=True)
class NGramFingerprint:
    """Hash of one window of consecutive lines."""

    hash: str
    ngram_size: int
    line_start: int
    document_id: str


# --- Templates ---

class TemplateType(str, Enum):
    HEADER = "HEADER"
    FOOTER = "FOOTER"
    DEMOGRAPHICS = "DEMOGRAPHICS"
    SIGNATURE = "SIGNATURE"
    MEDICATION_LIST = "MEDICATION_LIST"
    BOILERPLATE = "BOILERPLATE"
    LEGAL = "LEGAL"
    UNKNOWN = "UNKNOWN"


class TemplatePosition(str, Enum):
    START = "START"
    END = "END"
    MIDDLE = "MIDDLE"


class DetectedTemplate(BaseModel):
    id: str
    hash: str = Field(..., pattern=r"^[0-9a-f]{16}$")
    content: str
    line_count: int = Field(..., ge=1)
    char_count: int = Field(..., ge=0)
    type: TemplateType
    position: TemplatePosition
    document_count: int = Field(..., ge=1)
    frequency: float = Field(..., ge=0.0, le=1.0)
    first_seen_doc_id: str

    model_config = {"frozen": True}


# --- Per-document delta ---

class TemplateRef(BaseModel):
    template_id: str
    line_start: int = Field(..., ge=0)
    line_end: int = Field(..., ge=0)


class UniqueLine(BaseModel):
    line_number: int = Field(..., ge=0)
    content: str


class TemplateMatch(TemplateRef):
    confidence: float = Field(1.0, ge=0.0, le=1.0)


class DocumentDelta(BaseModel):
    document_id: str
    original_char_count: int = Field(..., ge=0)
    delta_char_count: int = Field(..., ge=0)
    compression_ratio: float = Field(..., ge=0.0)
    template_refs: list[TemplateRef] = Field(default_factory=list)
    unique_content: str = ""
    unique_lines: list[UniqueLine] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_template_refs(self) -> "DocumentDelta":
        previous_end = -1
        for ref in self.template_refs:
            if ref.line_end < ref.line_start:
                raise ValueError("template ref ends before it starts")
            if ref.line_start <= previous_end:
                raise ValueError("template refs must be sorted and non-overlapping")
            previous_end = ref.line_end
        return self


class TemplateDetectionResult(BaseModel):
    document_id: str
    matched_templates: list[TemplateMatch] = Field(default_factory=list)
    delta: DocumentDelta
    original_size: int = Field(..., ge=0)
    compressed_size: int = Field(..., ge=0)
    template_coverage: float = Field(..., ge=0.0, le=1.0)


# --- Corpus ---

class TemplateCorpus(BaseModel):
    templates: list[DetectedTemplate] = Field(default_factory=list)
    total_documents: int = Field(..., ge=0)
    total_templates_detected: int = Field(..., ge=0)
    average_compression_ratio: float = Field(1.0, ge=0.0)
    config_used: NGramConfig
    processing_time_ms: int = Field(0, ge=0)
    created_at: datetime


class CorpusStats(BaseModel):
    total_original_size: int = Field(..., ge=0)
    total_compressed_size: int = Field(..., ge=0)
    overall_compression_ratio: float = Field(..., ge=0.0)
    templates_detected: int = Field(..., ge=0)


class ProcessedCorpus(BaseModel):
    corpus: TemplateCorpus
    results: list[TemplateDetectionResult]
    stats: CorpusStats
