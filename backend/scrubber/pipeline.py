from __future__ import annotations

import asyncio
import logging
from typing import Iterable

from config import Settings, get_settings
from schemas.redaction import Edit, PIISpan, RedactedText, ScrubResult
from scrubber import patterns
from scrubber.chunking import SentenceSplitter, group_sentences
from scrubber.detectors import detect_contextual_mrn, detect_labeled_names, detect_standalone_states
from scrubber.session import RedactionSession
from scrubber.validation import secondary_pass, verify
from services.ner_service import NERService

logger = logging.getLogger(__name__)

_PROGRESS_MIN_CHUNKS = 10
_PROGRESS_EVERY = 5


# ---------------------------------------------------------------------------
# Placeholder helpers
# ---------------------------------------------------------------------------


def is_placeholder(value: str) -> bool:
    return patterns.PLACEHOLDER_TOKEN_RE.match(value.strip()) is not None


def looks_like_scrubbed(text: str) -> bool:
    return patterns.SCRUBBED_MARKER.search(text) is not None


def might_contain_pii(text: str) -> bool:
    """Cheap leak check for phone, SSN, email and ZIP shapes."""
    return any(p.search(text) for p in patterns.PII_SHAPES)


# ---------------------------------------------------------------------------
# Scrubber
# ---------------------------------------------------------------------------


class PIIScrubber:
    """Multi-pass PII/PHI redaction.

    Passes, strictly in order:

    1. structural regexes (emails, phones, SSNs, dates, addresses, names...)
    2. single ALL-CAPS tokens outside the acronym whitelist
    3. context detectors: state codes, labelled MRNs, labelled names
    4. sentence chunking
    5. NER over each chunk
    6. broad secondary patterns
    7. verification and confidence score

    ``regex_only`` skips 4, 5 and 7; the result then carries no confidence.
    Every call owns its own ``RedactionSession``.
    """

    def __init__(
        self,
        ner: NERService | None = None,
        splitter: SentenceSplitter | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._ner = ner or NERService(self._settings)
        self._splitter = splitter or SentenceSplitter(self._settings)

    async def scrub(self, text: str, regex_only: bool = False) -> ScrubResult:
        session = RedactionSession()

        if not text.strip():
            return self._finalize(text, session, None if regex_only else 100.0)

        interim = self._structural_pass(text, session)
        interim = self._all_caps_pass(interim, session)
        interim = self._context_pass(interim, session)

        if regex_only:
            logger.info("Regex-only mode: skipping NER")
            validated, added = secondary_pass(interim, session)
            logger.info("Pass 2 complete: %d additional entities caught", added)
            return self._finalize(validated, session, None)

        interim = await self._ner_pass(interim, session)
        logger.info("Pass 1 complete: %d entities redacted", session.count)

        validated, added = secondary_pass(interim, session)
        logger.info("Pass 2 complete: %d additional entities caught", added)

        report = verify(validated)
        if report.found_suspicious_pii:
            logger.warning(
                "Verification found %d suspicious patterns", len(report.suspicious_matches)
            )
        logger.info(
            "All passes complete: %d entities, confidence %.1f%%",
            session.count,
            report.confidence_score,
        )
        return self._finalize(validated, session, report.confidence_score)

    async def scrub_many(self, texts: Iterable[str], regex_only: bool = False) -> list[ScrubResult]:
        """Scrub documents concurrently, one session each."""
        return list(await asyncio.gather(*(self.scrub(t, regex_only) for t in texts)))

    # ------------------------------------------------------------------
    # Passes 1-3
    # ------------------------------------------------------------------

    @staticmethod
    def _structural_pass(text: str, session: RedactionSession) -> str:
        for pattern, prefix in patterns.STRUCTURAL_PASSES:
            text = session.substitute(text, pattern, prefix)
        return text

    @staticmethod
    def _all_caps_pass(text: str, session: RedactionSession) -> str:
        def replace(match) -> str:
            token = match.group(0)
            if token in patterns.WHITELIST_ACRONYMS or is_placeholder(token):
                return token
            return session.placeholder_for(token, "PER")

        return patterns.ALL_CAPS_SINGLE.sub(replace, text)

    @staticmethod
    def _context_pass(text: str, session: RedactionSession) -> str:
        # Each detector sees the output of the previous one.
        for detector, prefix in (
            (detect_standalone_states, "STATE"),
            (detect_contextual_mrn, "MRN"),
            (detect_labeled_names, "PER"),
        ):
            hits = detector(text)
            if hits:
                edits = [Edit(h.start, h.end, session.placeholder_for(h.value, prefix)) for h in hits]
                text = RedactionSession.apply_edits(text, edits)
        return text

    # ------------------------------------------------------------------
    # Passes 4-5
    # ------------------------------------------------------------------

    def _chunk(self, text: str) -> list[str]:
        sentences = self._splitter.split(text)
        return group_sentences(sentences, self._settings.ner_chunk_chars)

    def _accept(self, span: PIISpan) -> bool:
        return (
            span.label in self._settings.ner_target_labels
            and span.score > self._settings.ner_min_score
        )

    async def _ner_pass(self, text: str, session: RedactionSession) -> str:
        chunks = self._chunk(text)
        logger.info("Processing %d chunks for PII detection", len(chunks))

        scrubbed: list[str] = []
        for index, chunk in enumerate(chunks):
            if len(chunks) > _PROGRESS_MIN_CHUNKS and index % _PROGRESS_EVERY == 0:
                logger.info("Progress: %d/%d chunks", index, len(chunks))

            if not chunk.strip() or patterns.PLACEHOLDER_ONLY_RE.match(chunk):
                scrubbed.append(chunk)
                continue

            spans = sorted(
                (s for s in await self._ner.label(chunk, index) if self._accept(s)),
                key=lambda s: s.start,
            )
            edits: list[Edit] = []
            cursor = 0
            for span in spans:
                original = chunk[span.start:span.end]
                if span.start < cursor or not original or is_placeholder(original):
                    continue
                edits.append(Edit(span.start, span.end, session.placeholder_for(original, span.label)))
                cursor = span.end
            scrubbed.append(RedactionSession.apply_edits(chunk, edits))

        return "".join(scrubbed)

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    @staticmethod
    def _finalize(text: str, session: RedactionSession, confidence: float | None) -> ScrubResult:
        if might_contain_pii(text):
            logger.warning("Scrubbed output may still contain PII patterns")
        return ScrubResult(
            text=RedactedText(text),
            replacements=session.replacements,
            count=session.count,
            confidence=confidence,
        )
