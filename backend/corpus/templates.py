"""Cross-document template (boilerplate) detection.

Documents are cut into line n-grams, every n-gram is hashed, and hashes
that recur in enough documents become templates.  Each document is then
reduced to a delta: references to the templates it contains plus the
lines that are unique to it.
"""

from __future__ import annotations

import logging
import math
import re
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Sequence

from corpus.hashing import fnv1a_hash64, normalize
from errors import TemplateDetectionError
from schemas.templates import (
    CorpusStats,
    DetectedTemplate,
    DocumentDelta,
    DocumentInput,
    NGramConfig,
    NGramFingerprint,
    ProcessedCorpus,
    TemplateCorpus,
    TemplateDetectionResult,
    TemplateMatch,
    TemplatePosition,
    TemplateRef,
    TemplateType,
    UniqueLine,
)

logger = logging.getLogger(__name__)

_MIN_NGRAM_CHARS = 10

# ---------------------------------------------------------------------------
# Classification patterns (matched against the first three lines, lowercased)
# ---------------------------------------------------------------------------

_HEADER_PATTERNS = [
    re.compile(r"^patient\s*(name|id|mrn)"),
    re.compile(r"^(date|dob|age|sex|gender)"),
    re.compile(r"^(medical\s*record|chart|account)\s*#?"),
    re.compile(r"^(hospital|clinic|facility)\s*name"),
    re.compile(r"^(encounter|visit|admission)\s*(date|type)"),
]

_FOOTER_PATTERNS = [
    re.compile(r"^(page|pg\.?)\s*\d+\s*(of|/)\s*\d+"),
    re.compile(r"^(printed|generated|report\s*date)"),
    re.compile(r"^(clia|cap|laboratory)\s*(#|number|id)"),
    re.compile(r"^(medical|lab)\s*director"),
    re.compile(r"^(confidential|hipaa|privacy)"),
    re.compile(r"^\*{3,}|^-{3,}|^={3,}"),  # separator lines
]

_SIGNATURE_PATTERNS = [
    re.compile(r"^(electronically\s*signed|e-?signed)"),
    re.compile(r"^(signed|authenticated)\s*by"),
    re.compile(r"^(provider|physician|doctor|md|do|np|pa)"),
    re.compile(r"^(signature|sign)\s*on\s*file"),
]

_LEGAL_PATTERNS = [
    re.compile(r"^(this\s*(report|document|record)\s*is)"),
    re.compile(r"^(confidential|protected\s*health)"),
    re.compile(r"^(not\s*for\s*(distribution|release))"),
    re.compile(r"^(fax|copy)\s*to:"),
]

_MEDICATION_RE = re.compile(r"\b(mg|mcg|ml|tablet|capsule|bid|tid|qid|prn)\b")
_DEMOGRAPHICS_RE = re.compile(r"\b(dob|mrn|ssn|address|phone|insurance)\b")

_PATTERN_FAMILIES: list[tuple[TemplateType, list[re.Pattern[str]]]] = [
    (TemplateType.HEADER, _HEADER_PATTERNS),
    (TemplateType.FOOTER, _FOOTER_PATTERNS),
    (TemplateType.SIGNATURE, _SIGNATURE_PATTERNS),
    (TemplateType.LEGAL, _LEGAL_PATTERNS),
]


def classify_template_type(content: str, position: TemplatePosition) -> TemplateType:
    sample = " ".join(content.split("\n")[:3]).lower()

    for template_type, patterns in _PATTERN_FAMILIES:
        if any(p.search(sample) for p in patterns):
            return template_type

    if position == TemplatePosition.START:
        return TemplateType.HEADER
    if position == TemplatePosition.END:
        return TemplateType.FOOTER

    if _MEDICATION_RE.search(sample):
        return TemplateType.MEDICATION_LIST
    if _DEMOGRAPHICS_RE.search(sample):
        return TemplateType.DEMOGRAPHICS
    return TemplateType.BOILERPLATE


# ---------------------------------------------------------------------------
# N-gram extraction
# ---------------------------------------------------------------------------


def normalize_line(line: str, config: NGramConfig) -> str:
    return normalize(
        line,
        collapse_whitespace=config.normalize_whitespace,
        lowercase=config.lowercase_for_matching,
        strip_numbers=config.strip_numbers,
    )


def _normalize_window(lines: Sequence[str], config: NGramConfig) -> str:
    return "\n".join(normalize_line(line, config) for line in lines)


def extract_ngrams(
    lines: Sequence[str], document_id: str, config: NGramConfig
) -> list[NGramFingerprint]:
    """Hash every window of ``min..max`` consecutive lines.

    Windows with fewer than ten non-whitespace characters are skipped.
    """
    fingerprints: list[NGramFingerprint] = []
    for size in range(config.min_ngram_size, config.max_ngram_size + 1):
        for start in range(0, len(lines) - size + 1):
            normalized = _normalize_window(lines[start:start + size], config)
            if len("".join(normalized.split())) < _MIN_NGRAM_CHARS:
                continue
            fingerprints.append(
                NGramFingerprint(
                    hash=fnv1a_hash64(normalized),
                    ngram_size=size,
                    line_start=start,
                    document_id=document_id,
                )
            )
    return fingerprints


# ---------------------------------------------------------------------------
# Corpus construction
# ---------------------------------------------------------------------------


@dataclass
class _NGramStats:
    hash: str
    content: str
    normalized_content: str
    ngram_size: int
    # insertion-ordered doc id -> first line offset in that doc
    first_positions: dict[str, int] = field(default_factory=dict)


def _classify_position(avg_position: float, avg_doc_lines: float) -> TemplatePosition:
    if avg_position < avg_doc_lines * 0.2:
        return TemplatePosition.START
    if avg_position > avg_doc_lines * 0.8:
        return TemplatePosition.END
    return TemplatePosition.MIDDLE


def _remove_overlapping(
    templates: list[DetectedTemplate], config: NGramConfig
) -> list[DetectedTemplate]:
    """Drop templates whose normalised text sits inside a larger kept one."""
    kept: list[DetectedTemplate] = []
    kept_content: list[str] = []
    for template in sorted(templates, key=lambda t: -t.line_count):
        normalized = normalize_line(template.content, config)
        if any(normalized in existing for existing in kept_content):
            continue
        kept.append(template)
        kept_content.append(normalized)
    return kept


def _elapsed_ms(started: float) -> int:
    return round((time.perf_counter() - started) * 1000)


def build_corpus(
    documents: Sequence[DocumentInput], config: NGramConfig | None = None
) -> TemplateCorpus:
    """Detect templates shared across *documents*."""
    started = time.perf_counter()
    config = config or NGramConfig.from_settings()
    sample = list(documents[: config.max_documents_to_sample])

    if len(sample) < config.min_documents_for_template:
        logger.info(
            "Template detection skipped: %d documents (< %d required)",
            len(sample),
            config.min_documents_for_template,
        )
        return TemplateCorpus(
            templates=[],
            total_documents=len(documents),
            total_templates_detected=0,
            average_compression_ratio=1.0,
            config_used=config,
            processing_time_ms=_elapsed_ms(started),
            created_at=datetime.now(timezone.utc),
        )

    stats_by_hash: dict[str, _NGramStats] = {}
    total_lines = 0
    for doc in sample:
        lines = doc.content.split("\n")
        total_lines += len(lines)
        for fp in extract_ngrams(lines, doc.id, config):
            stats = stats_by_hash.get(fp.hash)
            if stats is None:
                window = lines[fp.line_start:fp.line_start + fp.ngram_size]
                stats = _NGramStats(
                    hash=fp.hash,
                    content="\n".join(window),
                    normalized_content=_normalize_window(window, config),
                    ngram_size=fp.ngram_size,
                )
                stats_by_hash[fp.hash] = stats
            stats.first_positions.setdefault(doc.id, fp.line_start)

    min_docs = max(
        config.min_documents_for_template,
        math.floor(len(sample) * config.template_threshold),
    )
    avg_doc_lines = total_lines / len(sample)

    candidates: list[DetectedTemplate] = []
    for ngram_hash, stats in stats_by_hash.items():
        doc_count = len(stats.first_positions)
        if doc_count < min_docs:
            continue
        positions = list(stats.first_positions.values())
        position = _classify_position(sum(positions) / len(positions), avg_doc_lines)
        candidates.append(
            DetectedTemplate(
                id=f"tpl_{ngram_hash[:8]}",
                hash=ngram_hash,
                content=stats.content,
                line_count=stats.ngram_size,
                char_count=len(stats.content),
                type=classify_template_type(stats.content, position),
                position=position,
                document_count=doc_count,
                frequency=doc_count / len(sample),
                first_seen_doc_id=next(iter(stats.first_positions)),
            )
        )

    candidates.sort(key=lambda t: -t.frequency)
    templates = _remove_overlapping(candidates, config)

    logger.info(
        "Template corpus built: %d documents, %d candidates, %d templates kept",
        len(sample),
        len(candidates),
        len(templates),
    )
    return TemplateCorpus(
        templates=templates,
        total_documents=len(documents),
        total_templates_detected=len(templates),
        average_compression_ratio=1.0,
        config_used=config,
        processing_time_ms=_elapsed_ms(started),
        created_at=datetime.now(timezone.utc),
    )


# ---------------------------------------------------------------------------
# Stripping and reconstruction
# ---------------------------------------------------------------------------


def _deduplicate_matches(matches: list[TemplateMatch]) -> list[TemplateMatch]:
    """Collapse overlapping matches, keeping the one that reaches furthest."""
    if not matches:
        return []
    ordered = sorted(matches, key=lambda m: m.line_start)
    result = [ordered[0]]
    for current in ordered[1:]:
        last = result[-1]
        if current.line_start <= last.line_end:
            if current.line_end > last.line_end:
                result[-1] = current
        else:
            result.append(current)
    return result


def strip_templates(document: DocumentInput, corpus: TemplateCorpus) -> TemplateDetectionResult:
    """Reduce *document* to template references plus its unique lines."""
    config = corpus.config_used
    lines = document.content.split("\n")
    covered = [False] * len(lines)
    by_hash = {t.hash: t for t in corpus.templates}

    matches: list[TemplateMatch] = []
    for fp in extract_ngrams(lines, document.id, config):
        template = by_hash.get(fp.hash)
        if template is None:
            continue
        matches.append(
            TemplateMatch(
                template_id=template.id,
                line_start=fp.line_start,
                line_end=fp.line_start + template.line_count - 1,
                confidence=1.0,
            )
        )

    kept_matches = _deduplicate_matches(matches)
    # lines of a match dropped in favour of an overlapping one stay unique
    for match in kept_matches:
        for i in range(match.line_start, min(match.line_end + 1, len(lines))):
            covered[i] = True

    unique_lines = [
        UniqueLine(line_number=i, content=line)
        for i, line in enumerate(lines)
        if not covered[i]
    ]
    unique_content = "\n".join(line.content for line in unique_lines)
    original_size = len(document.content)
    compressed_size = len(unique_content)

    try:
        delta = DocumentDelta(
            document_id=document.id,
            original_char_count=original_size,
            delta_char_count=compressed_size,
            compression_ratio=compressed_size / original_size if original_size else 1.0,
            template_refs=[
                TemplateRef(
                    template_id=m.template_id,
                    line_start=m.line_start,
                    line_end=m.line_end,
                )
                for m in kept_matches
            ],
            unique_content=unique_content,
            unique_lines=unique_lines,
        )
    except ValueError as exc:
        raise TemplateDetectionError(str(exc), document_id=document.id) from exc

    return TemplateDetectionResult(
        document_id=document.id,
        matched_templates=kept_matches,
        delta=delta,
        original_size=original_size,
        compressed_size=compressed_size,
        template_coverage=sum(covered) / len(lines) if lines else 0.0,
    )


def strip_templates_batch(
    documents: Iterable[DocumentInput], corpus: TemplateCorpus
) -> list[TemplateDetectionResult]:
    return [strip_templates(doc, corpus) for doc in documents]


def reconstruct_document(delta: DocumentDelta, corpus: TemplateCorpus) -> str:
    """Merge template content and unique lines back together by line number.

    Best effort: a template's stored exemplar may differ slightly from the
    text a particular document actually carried.
    """
    by_id = {t.id: t for t in corpus.templates}
    placed: list[tuple[int, str]] = []

    for ref in delta.template_refs:
        template = by_id.get(ref.template_id)
        if template is None:
            logger.warning("Template %s not found in corpus", ref.template_id)
            continue
        for offset, line in enumerate(template.content.split("\n")):
            placed.append((ref.line_start + offset, line))

    placed.extend((line.line_number, line.content) for line in delta.unique_lines)
    placed.sort(key=lambda item: item[0])
    return "\n".join(content for _, content in placed)


# ---------------------------------------------------------------------------
# One-shot processing and stats
# ---------------------------------------------------------------------------


def process_corpus(
    documents: Sequence[DocumentInput], config: NGramConfig | None = None
) -> ProcessedCorpus:
    corpus = build_corpus(documents, config)
    results = strip_templates_batch(documents, corpus)

    total_original = sum(r.original_size for r in results)
    total_compressed = sum(r.compressed_size for r in results)
    overall_ratio = total_compressed / total_original if total_original else 1.0

    logger.info(
        "Corpus processed: %d documents, %d -> %d chars (ratio %.3f)",
        len(results),
        total_original,
        total_compressed,
        overall_ratio,
    )
    return ProcessedCorpus(
        corpus=corpus.model_copy(update={"average_compression_ratio": overall_ratio}),
        results=results,
        stats=CorpusStats(
            total_original_size=total_original,
            total_compressed_size=total_compressed,
            overall_compression_ratio=overall_ratio,
            templates_detected=len(corpus.templates),
        ),
    )


def template_stats(corpus: TemplateCorpus) -> dict[str, Any]:
    by_type: dict[str, int] = {}
    by_position: dict[str, int] = {}
    for template in corpus.templates:
        by_type[template.type.value] = by_type.get(template.type.value, 0) + 1
        by_position[template.position.value] = by_position.get(template.position.value, 0) + 1

    return {
        "total_templates": len(corpus.templates),
        "by_type": by_type,
        "by_position": by_position,
        "top_templates": [
            {
                "type": t.type.value,
                "frequency": t.frequency,
                "preview": t.content[:50] + "...",
            }
            for t in corpus.templates[:5]
        ],
    }
