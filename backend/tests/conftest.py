from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from config import Settings
from scrubber.chunking import SentenceSplitter
from scrubber.pipeline import PIIScrubber
from services.ner_service import NERService


@pytest.fixture
def settings() -> Settings:
    """Settings with the regex sentence splitter so no spaCy pipeline is built."""
    return Settings(sentence_segmenter="regex")


@pytest.fixture
def mock_ner() -> AsyncMock:
    """A mock NERService that finds nothing unless a test says otherwise."""
    ner = AsyncMock(spec=NERService)
    ner.label.return_value = []
    return ner


@pytest.fixture
def scrubber(settings: Settings, mock_ner: AsyncMock) -> PIIScrubber:
    return PIIScrubber(ner=mock_ner, splitter=SentenceSplitter(settings), settings=settings)


@pytest.fixture
def sample_medical_text():
    """A realistic intake note with PHI."""
    return (
        "Patient Name: John Smith\n"
        "MRN: 00123456\n"
        "DOB: 03/14/1962\n"
        "Phone: (555) 123-4567\n"
        "Email: john.smith@example.com\n"
        "Address: 42 Oak Street, Springfield, IL 62704\n"
        "Chief complaint: chest pain for 2 days."
    )


class KeywordEmbedder:
    """Fake embedder: returns the vector of the first keyword found in the text."""

    def __init__(self, vectors: dict[str, list[float]], default: list[float]) -> None:
        self.vectors = vectors
        self.default = default
        self.calls: list[str] = []

    async def embed(self, text, pooling="mean", normalize=True, model_id=None):
        self.calls.append(text)
        for keyword, vector in self.vectors.items():
            if keyword in text:
                return list(vector)
        return list(self.default)


@pytest.fixture
def make_embedder():
    """Factory for keyword-driven fake embedders."""

    def _make(vectors: dict[str, list[float]], default: list[float] | None = None) -> KeywordEmbedder:
        dim = len(next(iter(vectors.values()))) if vectors else 4
        return KeywordEmbedder(vectors, default or [0.0] * dim)

    return _make
