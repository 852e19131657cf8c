"""Text normalisation and hashing primitives.

Three hashes live here, each with a different job:

* ``content_hash`` -- SHA-256 over a canonical form that ignores placeholder
  tokens and date formatting, for exact-duplicate detection.
* ``sim_hash`` -- a 64-position fuzzy hash whose Hamming distance tracks
  vocabulary overlap, for near-duplicate detection.
* ``fnv1a_hash64`` -- a fast non-cryptographic key for template lookup.

Everything in this module is pure and deterministic.
"""

from __future__ import annotations

import hashlib
import re

SIMHASH_BITS = 64

_FNV_OFFSET_64 = 0xCBF29CE484222325
_FNV_PRIME_64 = 0x100000001B3
_MASK_64 = 0xFFFFFFFFFFFFFFFF
_MASK_32 = 0xFFFFFFFF

_WHITESPACE_RE = re.compile(r"\s+")
_DIGITS_RE = re.compile(r"\d+")
_BRACKETED_RE = re.compile(r"\[.*?\]")
_NUMERIC_DATE_RE = re.compile(r"\d{1,2}/\d{1,2}/\d{2,4}")


# ---------------------------------------------------------------------------
# Normalisation
# ---------------------------------------------------------------------------


def normalize(
    text: str,
    collapse_whitespace: bool = True,
    lowercase: bool = True,
    strip_numbers: bool = False,
) -> str:
    """Canonicalise *text* for fingerprinting.

    ``strip_numbers`` swaps every maximal digit run for ``#`` so that
    lab values and dates stop mattering while the line shape is kept.
    """
    normalized = text
    if collapse_whitespace:
        normalized = _WHITESPACE_RE.sub(" ", normalized).strip()
    if lowercase:
        normalized = normalized.lower()
    if strip_numbers:
        normalized = _DIGITS_RE.sub("#", normalized)
    return normalized


def normalize_for_hashing(text: str) -> str:
    """Canonical form used by ``content_hash`` and ``sim_hash``.

    Placeholder tokens are dropped and ``M/D/YY``-style dates collapse to
    ``DATE`` so that re-scrubbed or re-dated copies compare equal.
    """
    normalized = _WHITESPACE_RE.sub(" ", text.lower())
    normalized = _BRACKETED_RE.sub("", normalized)
    normalized = _NUMERIC_DATE_RE.sub("DATE", normalized)
    return normalized.strip()


# ---------------------------------------------------------------------------
# Hashes
# ---------------------------------------------------------------------------


def content_hash(text: str) -> str:
    """64-char lowercase hex SHA-256 of the hashing-normalised text."""
    return hashlib.sha256(normalize_for_hashing(text).encode("utf-8")).hexdigest()


def _word_hash(word: str) -> int:
    # h = h * 31 + c, truncated to 32 bits
    h = 0
    for ch in word:
        h = ((h << 5) - h + ord(ch)) & _MASK_32
    return h


def sim_hash(text: str) -> str:
    """64-character ``'0'``/``'1'`` SimHash over words longer than two chars."""
    words = [w for w in normalize_for_hashing(text).split() if len(w) > 2]
    vector = [0] * SIMHASH_BITS

    for word in words:
        h = _word_hash(word)
        for i in range(SIMHASH_BITS):
            if (h >> (i % 32)) & 1:
                vector[i] += 1
            else:
                vector[i] -= 1

    return "".join("1" if v > 0 else "0" for v in vector)


def hamming_distance(hash_a: str, hash_b: str) -> int:
    """Differing positions over the common prefix of two bit strings."""
    return sum(1 for a, b in zip(hash_a, hash_b) if a != b)


def sim_hash_similarity(hash_a: str, hash_b: str) -> float:
    """``1 - hamming/64``, always within ``[0, 1]``."""
    distance = hamming_distance(hash_a, hash_b)
    return 1.0 - distance / SIMHASH_BITS


def fnv1a_hash64(text: str) -> str:
    """FNV-1a 64-bit hash as 16 lowercase hex chars.  Not for security."""
    h = _FNV_OFFSET_64
    for ch in text:
        h ^= ord(ch)
        h = (h * _FNV_PRIME_64) & _MASK_64
    return format(h, "016x")
