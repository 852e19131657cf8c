from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, Field, GetJsonSchemaHandler, field_validator, model_validator
from pydantic_core import core_schema

PLACEHOLDER_RE = re.compile(r"^\[([A-Z_]+)_(\d+)\]$")


class RedactedText(str):
    """Text that has been through the complete redaction pipeline.

    Only ``scrubber.pipeline`` constructs instances.  ``ScrubResult``
    rejects plain ``str`` so unredacted text can never be mislabelled.
    """

    __slots__ = ()

    @classmethod
    def __get_pydantic_core_schema__(cls, _source: Any, _handler: Any) -> core_schema.CoreSchema:
        return core_schema.is_instance_schema(
            cls,
            serialization=core_schema.plain_serializer_function_ser_schema(str),
        )

    @classmethod
    def __get_pydantic_json_schema__(
        cls, _schema: core_schema.CoreSchema, _handler: GetJsonSchemaHandler
    ) -> dict[str, Any]:
        return {"type": "string", "title": "RedactedText"}


# ---------------------------------------------------------------------------
# Spans and edits
# ---------------------------------------------------------------------------


@dataclass
class PIISpan:
    """A labelled span returned by the external NER model."""

    label: str
    start: int
    end: int
    score: float
    text: str = ""


@dataclass(frozen=True)
class Edit:
    """A pending replacement of ``text[start:end]``."""

    start: int
    end: int
    replacement: str


@dataclass(frozen=True)
class DetectedValue:
    """A context-detector hit: the original value and where it sits."""

    start: int
    end: int
    value: str


# ---------------------------------------------------------------------------
# Verification
# ---------------------------------------------------------------------------


@dataclass
class SuspiciousMatch:
    """A broad-pattern survivor reported by the verification pass."""

    kind: str
    text: str


@dataclass
class VerificationReport:
    """Outcome of the final, non-mutating verification pass."""

    found_suspicious_pii: bool
    suspicious_matches: list[SuspiciousMatch] = field(default_factory=list)
    confidence_score: float = 100.0


# ---------------------------------------------------------------------------
# Scrub result
# ---------------------------------------------------------------------------


class ScrubResult(BaseModel):
    """Redacted text plus the original -> placeholder map."""

    text: RedactedText
    replacements: dict[str, str] = Field(default_factory=dict)
    count: int = Field(0, ge=0)
    confidence: float | None = Field(None, ge=0, le=100)

    model_config = {"frozen": True}

    @field_validator("replacements")
    @classmethod
    def validate_placeholders(cls, v: dict[str, str]) -> dict[str, str]:
        for original, placeholder in v.items():
            match = PLACEHOLDER_RE.match(placeholder)
            if match is None or int(match.group(2)) < 1:
                raise ValueError(f"Malformed placeholder {placeholder!r}")
        if len(set(v.values())) != len(v):
            raise ValueError("Two originals share one placeholder")
        return v

    @model_validator(mode="after")
    def validate_count(self) -> "ScrubResult":
        if self.count != len(self.replacements):
            raise ValueError(
                f"count ({self.count}) must equal the number of unique "
                f"replacements ({len(self.replacements)})"
            )
        return self
