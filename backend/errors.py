"""Exception hierarchy for the scrubbing and corpus services.

Only the two external-model boundaries (NER and embeddings) fail at
runtime.  Each failure is tagged with the unit of work that failed so
callers can retry at the right granularity.
"""

from __future__ import annotations


class MedScrubError(Exception):
    """Base exception for all application-specific errors."""


class ModelLoadError(MedScrubError):
    """Raised when an external model cannot be loaded."""

    def __init__(self, capability: str, cause: BaseException | None = None) -> None:
        self.capability = capability
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Failed to load {capability} model{detail}")


class NERChunkError(MedScrubError):
    """Raised when the NER call for one chunk fails or times out."""

    def __init__(
        self,
        chunk_index: int,
        timed_out: bool = False,
        cause: BaseException | None = None,
    ) -> None:
        self.chunk_index = chunk_index
        self.timed_out = timed_out
        self.cause = cause
        reason = "timed out" if timed_out else f"failed: {cause}"
        super().__init__(f"NER chunk {chunk_index} {reason}")


class SemanticDedupError(MedScrubError):
    """Raised when a semantic deduplication phase fails."""

    PHASES = ("embedding", "similarity", "clustering", "selection")

    def __init__(self, message: str, phase: str) -> None:
        if phase not in self.PHASES:
            raise ValueError(f"Unknown dedup phase: {phase}")
        self.phase = phase
        super().__init__(f"[{phase}] {message}")


class TemplateDetectionError(MedScrubError):
    """Raised when template detection cannot process a document."""

    def __init__(self, message: str, document_id: str | None = None) -> None:
        self.document_id = document_id
        super().__init__(message)
