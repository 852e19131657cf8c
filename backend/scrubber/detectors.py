"""Positional context detectors.

Each detector only reports where a value sits; turning hits into
placeholders is left to the caller so that all edits for one detector
can be applied in a single pass.
"""

from __future__ import annotations

from schemas.redaction import DetectedValue
from scrubber import patterns


def detect_standalone_states(text: str) -> list[DetectedValue]:
    """Two-letter US state and territory codes standing on their own.

    Tokens touching placeholder syntax (``[``, ``_`` before or ``]``
    after) are skipped.
    """
    found: list[DetectedValue] = []
    for match in patterns.STATE_TOKEN.finditer(text):
        code = match.group(1)
        if code not in patterns.US_STATES:
            continue
        start, end = match.start(), match.end()
        before = text[start - 1:start] if start > 0 else ""
        after = text[end:end + 1]
        if before in ("[", "_") or after == "]":
            continue
        found.append(DetectedValue(start=start, end=end, value=code))
    return found


def detect_contextual_mrn(text: str) -> list[DetectedValue]:
    """Record numbers introduced by a keyword such as ``MRN:`` or ``Patient ID``."""
    found: list[DetectedValue] = []
    for match in patterns.MRN_CONTEXT.finditer(text):
        found.append(DetectedValue(start=match.start(2), end=match.end(2), value=match.group(2)))
    return found


def detect_labeled_names(text: str) -> list[DetectedValue]:
    """Names following a label such as ``Patient Name:``.

    The label is matched case-insensitively, the name itself is not, so
    prose like "patient: was examined" is left alone.
    """
    found: list[DetectedValue] = []
    for label in patterns.NAME_LABEL.finditer(text):
        start = label.end()
        for shape in patterns.LABELED_NAME_SHAPES:
            name = shape.match(text, start)
            if name is None:
                continue
            found.append(DetectedValue(start=start, end=name.end(), value=name.group(0).strip()))
            break
    return found
