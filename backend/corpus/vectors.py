from __future__ import annotations

import math
import re
from typing import Sequence

Vector = Sequence[float]


# ---------------------------------------------------------------------------
# Vector math
# ---------------------------------------------------------------------------


def _check_dims(a: Vector, b: Vector) -> None:
    if len(a) != len(b):
        raise ValueError(f"Vector dimension mismatch: {len(a)} vs {len(b)}")


def cosine_similarity(a: Vector, b: Vector) -> float:
    """Cosine of the angle between *a* and *b*; 0.0 if either is a zero vector."""
    _check_dims(a, b)
    dot = norm_a = norm_b = 0.0
    for x, y in zip(a, b):
        dot += x * y
        norm_a += x * x
        norm_b += y * y
    magnitude = math.sqrt(norm_a) * math.sqrt(norm_b)
    if magnitude == 0:
        return 0.0
    return dot / magnitude


def euclidean_distance(a: Vector, b: Vector) -> float:
    _check_dims(a, b)
    return math.sqrt(sum((x - y) ** 2 for x, y in zip(a, b)))


def mean_pool(vectors: Sequence[Vector]) -> list[float]:
    if not vectors:
        return []
    if len(vectors) == 1:
        return list(vectors[0])
    count = len(vectors)
    return [sum(column) / count for column in zip(*vectors)]


def max_pool(vectors: Sequence[Vector]) -> list[float]:
    if not vectors:
        return []
    if len(vectors) == 1:
        return list(vectors[0])
    return [max(column) for column in zip(*vectors)]


def normalize_vector(v: Vector) -> list[float]:
    """Scale *v* to unit length.  The zero vector maps to itself."""
    norm = math.sqrt(sum(x * x for x in v))
    if norm == 0:
        return list(v)
    return [x / norm for x in v]


# ---------------------------------------------------------------------------
# Text chunking
# ---------------------------------------------------------------------------


def chunk_text(text: str, chunk_size: int, overlap: int) -> list[str]:
    """Sliding character windows of *chunk_size*, stepping ``chunk_size - overlap``."""
    if overlap >= chunk_size:
        raise ValueError("overlap must be smaller than chunk_size")
    chunks: list[str] = []
    start = 0
    while start < len(text):
        end = min(start + chunk_size, len(text))
        chunks.append(text[start:end])
        if end >= len(text):
            break
        start = end - overlap
    return chunks


# ---------------------------------------------------------------------------
# Medical vocabulary density
# ---------------------------------------------------------------------------

MEDICAL_TERM_PATTERNS: list[re.Pattern[str]] = [
    # labs
    re.compile(r"\b(WBC|RBC|HGB|HCT|PLT|BUN|creatinine|glucose|sodium|potassium)\b", re.IGNORECASE),
    # vitals
    re.compile(r"\b(BP|HR|RR|SpO2|temperature|pulse|blood\s*pressure)\b", re.IGNORECASE),
    # medications
    re.compile(r"\b(mg|mcg|mL|tablet|capsule|injection|IV|PO|BID|TID|QID|PRN)\b", re.IGNORECASE),
    # diagnoses
    re.compile(r"\b(diagnosis|dx|impression|assessment|findings)\b", re.IGNORECASE),
    # procedures
    re.compile(r"\b(CT|MRI|X-ray|ultrasound|biopsy|surgery|procedure)\b", re.IGNORECASE),
    # anatomy
    re.compile(r"\b(chest|abdomen|lung|heart|liver|kidney|brain|spine)\b", re.IGNORECASE),
]


def count_medical_terms(text: str) -> int:
    return sum(len(pattern.findall(text)) for pattern in MEDICAL_TERM_PATTERNS)


def medical_density(text: str) -> float:
    """Medical term hits per 100 words."""
    words = text.split()
    if not words:
        return 0.0
    return count_medical_terms(text) / len(words) * 100
