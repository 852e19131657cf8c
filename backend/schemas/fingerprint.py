from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, model_validator


class DocumentType(str, Enum):
    LAB_REPORT = "lab_report"
    IMAGING = "imaging"
    PROGRESS_NOTE = "progress_note"
    PATHOLOGY = "pathology"
    MEDICATION = "medication"
    DISCHARGE = "discharge"
    CORRESPONDENCE = "correspondence"
    UNKNOWN = "unknown"


class DifferenceType(str, Enum):
    EXACT = "exact"
    NEAR_DUPLICATE = "near-duplicate"
    SAME_EVENT = "same-event"
    UNIQUE = "unique"


class DocumentFingerprint(BaseModel):
    """Content identity of one scrubbed document."""

    content_hash: str = Field(..., pattern=r"^[0-9a-f]{64}$")
    sim_hash: str = Field(..., pattern=r"^[01]{64}$")
    word_count: int = Field(..., ge=0)
    date_references: tuple[str, ...] = ()
    document_type: DocumentType = DocumentType.UNKNOWN

    model_config = {"frozen": True}


class DuplicateAnalysis(BaseModel):
    """How one document relates to an earlier reference document."""

    is_duplicate: bool
    duplicate_of: str | None = None
    similarity: float = Field(..., ge=0.0, le=1.0)
    difference_type: DifferenceType

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_duplicate_flag(self) -> "DuplicateAnalysis":
        duplicate_kinds = {DifferenceType.EXACT, DifferenceType.NEAR_DUPLICATE}
        if self.is_duplicate != (self.difference_type in duplicate_kinds):
            raise ValueError(
                f"is_duplicate={self.is_duplicate} is inconsistent with "
                f"difference_type={self.difference_type.value}"
            )
        return self
