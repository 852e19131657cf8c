from __future__ import annotations

import logging
import re
import threading
from typing import Any

from config import Settings, get_settings

logger = logging.getLogger(__name__)

# shortest run ending in terminal punctuation (plus trailing space) or at end of text
_FALLBACK_SENTENCE_RE = re.compile(r"(?s).+?(?:[.!?]+\]*\s*|\Z)")


class SentenceSplitter:
    """Sentence segmentation for NER chunking.

    Uses a blank spaCy pipeline with the rule-based sentencizer, or a
    simple punctuation scan when ``sentence_segmenter`` is ``"regex"``.
    Returned sentences keep their trailing whitespace so that joining
    them reproduces the input exactly.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._nlp: Any = None
        self._lock = threading.Lock()

    @property
    def mode(self) -> str:
        return self._settings.sentence_segmenter

    def _load_nlp(self) -> Any:
        if self._nlp is None:
            with self._lock:
                if self._nlp is None:
                    import spacy

                    nlp = spacy.blank(self._settings.spacy_language)
                    nlp.add_pipe("sentencizer")
                    # long documents are fine: the sentencizer has no parser memory cost
                    nlp.max_length = 10_000_000
                    self._nlp = nlp
                    logger.info("Sentence segmenter ready (spacy:%s)", self._settings.spacy_language)
        return self._nlp

    def split(self, text: str) -> list[str]:
        if not text:
            return []
        if self.mode == "regex":
            return split_sentences_regex(text)
        doc = self._load_nlp()(text)
        return [sent.text_with_ws for sent in doc.sents]


def split_sentences_regex(text: str) -> list[str]:
    """Punctuation-terminated runs covering the whole of *text*."""
    sentences = _FALLBACK_SENTENCE_RE.findall(text)
    return sentences or [text]


def group_sentences(sentences: list[str], max_chars: int) -> list[str]:
    """Pack whole sentences into chunks of at most *max_chars*.

    A single sentence longer than *max_chars* becomes its own chunk.
    """
    chunks: list[str] = []
    current = ""
    for sentence in sentences:
        if len(current) + len(sentence) > max_chars:
            if current:
                chunks.append(current)
            current = sentence
        else:
            current += sentence
    if current:
        chunks.append(current)
    return chunks
