"""Broad-pattern passes run after the primary redaction.

``secondary_pass`` rewrites the text, catching what the strict patterns
and the NER model missed.  ``verify`` re-runs the same patterns without
touching the text and turns the survivors into a confidence score.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from schemas.redaction import Edit, SuspiciousMatch, VerificationReport
from scrubber import patterns
from scrubber.session import RedactionSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _BroadCheck:
    pattern: re.Pattern[str]
    prefix: str
    kind: str
    whitelist: bool = False
    skip: re.Pattern[str] | None = None


# Order matters: each check sees the output of the previous one.
BROAD_CHECKS: list[_BroadCheck] = [
    _BroadCheck(patterns.CAPITALIZED_SEQUENCE, "PER", "Capitalized sequence (potential name)", whitelist=True),
    _BroadCheck(patterns.ALL_CAPS_SEQUENCE, "PER", "ALL CAPS sequence (potential name)"),
    _BroadCheck(patterns.LAST_FIRST_SEQUENCE, "PER", "LAST, FIRST format (potential name)", whitelist=True),
    _BroadCheck(patterns.NUMERIC_ID, "ID", "Numeric ID"),
    _BroadCheck(patterns.EMAIL_LIKE, "EMAIL", "Email-like pattern"),
    _BroadCheck(patterns.PHONE_LIKE, "PHONE", "Phone-like pattern"),
    _BroadCheck(patterns.DATE_LIKE, "DATE", "Date-like pattern", skip=patterns.TIME_OR_VERSION),
    _BroadCheck(patterns.ADDRESS_LIKE, "LOC", "Address-like pattern", whitelist=True),
]


def is_whitelisted(term: str) -> bool:
    cleaned = term.strip()
    return cleaned in patterns.WHITELIST_TERMS or cleaned.lower() in patterns.WHITELIST_TERMS


def _all_words_whitelisted(match: str) -> bool:
    return all(is_whitelisted(word) for word in match.split())


def _is_benign(match: str) -> bool:
    return is_whitelisted(match) or _all_words_whitelisted(match)


# ---------------------------------------------------------------------------
# Phase 6: secondary validation
# ---------------------------------------------------------------------------


def secondary_pass(text: str, session: RedactionSession) -> tuple[str, int]:
    """Redact residual PII-shaped text.  Returns the new text and how many
    new originals were added to *session*.
    """
    before = session.count
    for check in BROAD_CHECKS:
        edits: list[Edit] = []
        for match in check.pattern.finditer(text):
            value = match.group(0)
            if patterns.PLACEHOLDER_TOKEN_RE.match(value):
                continue
            if check.whitelist and _is_benign(value):
                continue
            if check.skip is not None and check.skip.match(value):
                continue
            edits.append(Edit(match.start(), match.end(), session.placeholder_for(value, check.prefix)))
        if edits:
            text = RedactionSession.apply_edits(text, edits)
    return text, session.count - before


# ---------------------------------------------------------------------------
# Phase 7: verification
# ---------------------------------------------------------------------------


def confidence_for(survivors: int) -> float:
    """100 when clean, then a steeper penalty as survivors pile up, floor 50."""
    if survivors == 0:
        return 100.0
    if survivors <= 5:
        return float(99 - survivors)
    if survivors <= 10:
        return float(94 - (survivors - 5))
    if survivors <= 20:
        return float(89 - (survivors - 10))
    return float(max(50, 79 - (survivors - 20)))


def verify(text: str) -> VerificationReport:
    """Report broad-pattern matches left in *text* without changing it."""
    suspicious: list[SuspiciousMatch] = []
    for check in BROAD_CHECKS:
        for match in check.pattern.finditer(text):
            value = match.group(0)
            if patterns.PLACEHOLDER_TOKEN_RE.match(value) or _is_benign(value):
                continue
            suspicious.append(SuspiciousMatch(kind=check.kind, text=value))

    return VerificationReport(
        found_suspicious_pii=bool(suspicious),
        suspicious_matches=suspicious,
        confidence_score=confidence_for(len(suspicious)),
    )
