from __future__ import annotations

import logging
import re
from typing import Iterable

from schemas.redaction import Edit

logger = logging.getLogger(__name__)


class RedactionSession:
    """Placeholder bookkeeping for a single ``scrub`` call.

    Maps each original value to a stable placeholder such as ``[PER_1]``
    and keeps one counter per placeholder prefix.  A session belongs to
    exactly one scrub invocation and is never shared between calls.
    """

    def __init__(self) -> None:
        # original value -> placeholder
        self._forward: dict[str, str] = {}
        # prefix -> last assigned number
        self._counters: dict[str, int] = {}

    # ------------------------------------------------------------------
    # Core operations
    # ------------------------------------------------------------------

    def placeholder_for(self, value: str, prefix: str) -> str:
        """Return the placeholder for *value*, assigning one on first sight.

        A value already seen keeps its placeholder even when a later pass
        would have classified it under a different prefix.
        """
        existing = self._forward.get(value)
        if existing is not None:
            return existing

        counter = self._counters.get(prefix, 0) + 1
        self._counters[prefix] = counter
        placeholder = f"[{prefix}_{counter}]"
        self._forward[value] = placeholder
        return placeholder

    @property
    def replacements(self) -> dict[str, str]:
        """Copy of the original -> placeholder map, in first-seen order."""
        return dict(self._forward)

    @property
    def count(self) -> int:
        return len(self._forward)

    # ------------------------------------------------------------------
    # Text-level operations
    # ------------------------------------------------------------------

    def substitute(self, text: str, pattern: re.Pattern[str], prefix: str) -> str:
        """Replace every match of *pattern* in one left-to-right scan."""
        return pattern.sub(lambda m: self.placeholder_for(m.group(0), prefix), text)

    @staticmethod
    def apply_edits(text: str, edits: Iterable[Edit]) -> str:
        """Apply non-overlapping *edits* in a single left-to-right rebuild.

        Edits are sorted by start offset.  An edit that begins inside the
        previous one is dropped.
        """
        parts: list[str] = []
        cursor = 0
        for edit in sorted(edits, key=lambda e: (e.start, e.end)):
            if edit.start < cursor:
                logger.debug("Dropping overlapping edit at %d", edit.start)
                continue
            parts.append(text[cursor:edit.start])
            parts.append(edit.replacement)
            cursor = edit.end
        parts.append(text[cursor:])
        return "".join(parts)
