"""Embedding-based semantic deduplication.

Pipeline: embed every document, score all pairs by cosine similarity,
union pairs above the similarity threshold, then pick one representative
per cluster.  Only the embedding step touches an external model.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Protocol, Sequence

from corpus.vectors import chunk_text, cosine_similarity, max_pool, mean_pool, medical_density
from errors import ModelLoadError, SemanticDedupError
from schemas.dedup import (
    ClusterType,
    DedupDocumentInput,
    DeduplicationResult,
    DocumentCluster,
    DocumentEmbedding,
    EmbeddingConfig,
    SelectionCriteria,
    SimilarityPair,
    SimilarityType,
)

logger = logging.getLogger(__name__)

MIN_PAIR_SIMILARITY = 0.5
DEFAULT_OCR_QUALITY = 0.8
RECENCY_SCORE = 0.5
DENSITY_CAP = 20.0  # terms per 100 words


class Embedder(Protocol):
    async def embed(
        self,
        text: str,
        pooling: str = "mean",
        normalize: bool = True,
        model_id: str | None = None,
    ) -> list[float]: ...


# ---------------------------------------------------------------------------
# Union-find
# ---------------------------------------------------------------------------


class UnionFind:
    """Disjoint sets over string keys with union by rank.

    ``find`` is iterative with path halving so deep chains never recurse.
    """

    def __init__(self, keys: Sequence[str] = ()) -> None:
        self._parent: dict[str, str] = {}
        self._rank: dict[str, int] = {}
        for key in keys:
            self.add(key)

    def add(self, key: str) -> None:
        if key not in self._parent:
            self._parent[key] = key
            self._rank[key] = 0

    def find(self, key: str) -> str:
        parent = self._parent
        while parent[key] != key:
            parent[key] = parent[parent[key]]
            key = parent[key]
        return key

    def union(self, a: str, b: str) -> None:
        root_a, root_b = self.find(a), self.find(b)
        if root_a == root_b:
            return
        rank_a, rank_b = self._rank[root_a], self._rank[root_b]
        if rank_a < rank_b:
            self._parent[root_a] = root_b
        elif rank_a > rank_b:
            self._parent[root_b] = root_a
        else:
            self._parent[root_b] = root_a
            self._rank[root_a] = rank_a + 1


# ---------------------------------------------------------------------------
# Phase 1: embeddings
# ---------------------------------------------------------------------------


def _aggregate(chunk_vectors: list[list[float]], strategy: str) -> list[float]:
    if len(chunk_vectors) == 1 or strategy == "first":
        return chunk_vectors[0]
    if strategy == "max_pool":
        return max_pool(chunk_vectors)
    return mean_pool(chunk_vectors)


async def generate_embeddings(
    documents: Sequence[DedupDocumentInput],
    embedder: Embedder,
    config: EmbeddingConfig | None = None,
) -> list[DocumentEmbedding]:
    """Embed each document, chunking long ones and pooling the chunks.

    Documents with no non-blank chunk get a zero vector.
    """
    config = config or EmbeddingConfig.from_settings()
    embeddings: list[DocumentEmbedding] = []

    for doc in documents:
        chunks = chunk_text(doc.content, config.chunk_size, config.chunk_overlap)
        chunk_vectors: list[list[float]] = []
        try:
            for chunk in chunks:
                if not chunk.strip():
                    continue
                chunk_vectors.append(
                    await embedder.embed(
                        chunk,
                        pooling=config.pooling_strategy,
                        normalize=True,
                        model_id=config.model_id,
                    )
                )
        except ModelLoadError:
            raise
        except Exception as exc:
            raise SemanticDedupError(
                f"Embedding generation failed for {doc.id}: {exc}", "embedding"
            ) from exc

        if chunk_vectors:
            vector = _aggregate(chunk_vectors, config.aggregate_chunks)
        else:
            vector = [0.0] * config.embedding_dimensions

        embeddings.append(
            DocumentEmbedding(
                document_id=doc.id,
                embedding=vector,
                embedding_dim=len(vector),
                chunk_count=len(chunks),
                text_length=len(doc.content),
            )
        )
    return embeddings


# ---------------------------------------------------------------------------
# Phase 2: similar pairs
# ---------------------------------------------------------------------------


def _pair_type(similarity: float, config: EmbeddingConfig) -> SimilarityType:
    if similarity >= config.near_duplicate_threshold:
        return SimilarityType.DUPLICATE
    if similarity >= config.similarity_threshold:
        return SimilarityType.SIMILAR
    return SimilarityType.RELATED


def find_similar_pairs(
    embeddings: Sequence[DocumentEmbedding], config: EmbeddingConfig | None = None
) -> list[SimilarityPair]:
    """All pairs at or above 0.5 (or the similarity threshold when lower), most similar first."""
    config = config or EmbeddingConfig.from_settings()
    floor = min(MIN_PAIR_SIMILARITY, config.similarity_threshold)
    pairs: list[SimilarityPair] = []
    try:
        for i in range(len(embeddings)):
            for j in range(i + 1, len(embeddings)):
                similarity = cosine_similarity(embeddings[i].embedding, embeddings[j].embedding)
                if similarity < floor:
                    continue
                pairs.append(
                    SimilarityPair(
                        doc_id1=embeddings[i].document_id,
                        doc_id2=embeddings[j].document_id,
                        similarity=min(similarity, 1.0),
                        type=_pair_type(similarity, config),
                    )
                )
    except ValueError as exc:
        raise SemanticDedupError(str(exc), "similarity") from exc

    pairs.sort(key=lambda p: -p.similarity)
    return pairs


# ---------------------------------------------------------------------------
# Phase 3: clustering
# ---------------------------------------------------------------------------


def _internal_similarities(vectors: list[list[float]]) -> list[float]:
    return [
        cosine_similarity(vectors[i], vectors[j])
        for i in range(len(vectors))
        for j in range(i + 1, len(vectors))
    ]


def _clamp(value: float) -> float:
    return max(-1.0, min(1.0, value))


def cluster_documents(
    embeddings: Sequence[DocumentEmbedding],
    pairs: Sequence[SimilarityPair],
    config: EmbeddingConfig | None = None,
) -> list[DocumentCluster]:
    """Union every pair at or above the similarity threshold.

    Clusters come out in order of their first member's embedding.  The
    representative is provisional until ``select_representatives`` runs.
    """
    config = config or EmbeddingConfig.from_settings()
    vectors = {e.document_id: e.embedding for e in embeddings}
    sets = UnionFind(list(vectors))

    try:
        for pair in pairs:
            if pair.similarity >= config.similarity_threshold:
                sets.union(pair.doc_id1, pair.doc_id2)

        groups: dict[str, list[str]] = {}
        for doc_id in vectors:
            groups.setdefault(sets.find(doc_id), []).append(doc_id)

        clusters: list[DocumentCluster] = []
        for index, doc_ids in enumerate(groups.values()):
            members = [vectors[d] for d in doc_ids]
            sims = _internal_similarities(members)
            avg_sim = sum(sims) / len(sims) if sims else 1.0
            min_sim = min(sims) if sims else 1.0

            if len(doc_ids) == 1:
                cluster_type = ClusterType.SINGLETON
            elif avg_sim >= config.near_duplicate_threshold:
                cluster_type = ClusterType.DUPLICATE_GROUP
            elif avg_sim >= config.similarity_threshold:
                cluster_type = ClusterType.SIMILAR_GROUP
            else:
                cluster_type = ClusterType.TOPIC_GROUP

            clusters.append(
                DocumentCluster(
                    cluster_id=f"cluster_{index}",
                    type=cluster_type,
                    document_ids=doc_ids,
                    representative_id=doc_ids[0],
                    representative_score=0.0,
                    avg_internal_similarity=_clamp(avg_sim),
                    min_internal_similarity=_clamp(min_sim),
                    centroid=mean_pool(members),
                )
            )
    except (KeyError, ValueError) as exc:
        raise SemanticDedupError(f"Clustering failed: {exc}", "clustering") from exc
    return clusters


# ---------------------------------------------------------------------------
# Phase 4: representatives
# ---------------------------------------------------------------------------


def score_document(
    doc: DedupDocumentInput, max_length: int, criteria: SelectionCriteria
) -> float:
    length_score = len(doc.content) / max_length if max_length > 0 else 0.0
    score = length_score * criteria.length_weight
    if doc.date is not None:
        score += RECENCY_SCORE * criteria.recency_weight
    quality = doc.ocr_quality if doc.ocr_quality is not None else DEFAULT_OCR_QUALITY
    score += quality * criteria.quality_weight
    density = min(medical_density(doc.content) / DENSITY_CAP, 1.0)
    score += density * criteria.medical_density_weight
    return score


def select_representatives(
    clusters: Sequence[DocumentCluster],
    documents: Sequence[DedupDocumentInput],
    criteria: SelectionCriteria | None = None,
) -> list[DocumentCluster]:
    """Pick the highest-scoring member of each cluster; ties go to the earliest."""
    criteria = criteria or SelectionCriteria()
    by_id = {d.id: d for d in documents}
    selected: list[DocumentCluster] = []

    for cluster in clusters:
        if len(cluster.document_ids) == 1:
            selected.append(
                cluster.model_copy(
                    update={"representative_id": cluster.document_ids[0], "representative_score": 1.0}
                )
            )
            continue

        members = [by_id[d] for d in cluster.document_ids if d in by_id]
        if not members:
            raise SemanticDedupError(
                f"No documents found for {cluster.cluster_id}", "selection"
            )
        max_length = max(len(d.content) for d in members)

        best_id, best_score = members[0].id, float("-inf")
        for doc in members:
            score = score_document(doc, max_length, criteria)
            if score > best_score:
                best_id, best_score = doc.id, score

        selected.append(
            cluster.model_copy(
                update={"representative_id": best_id, "representative_score": best_score}
            )
        )
    return selected


# ---------------------------------------------------------------------------
# Full pipeline
# ---------------------------------------------------------------------------


async def deduplicate(
    documents: Sequence[DedupDocumentInput],
    embedder: Embedder,
    config: EmbeddingConfig | None = None,
    criteria: SelectionCriteria | None = None,
) -> DeduplicationResult:
    started = time.perf_counter()
    config = config or EmbeddingConfig.from_settings()

    logger.info("Semantic dedup: embedding %d documents", len(documents))
    embeddings = await generate_embeddings(documents, embedder, config)

    pairs = find_similar_pairs(embeddings, config)
    logger.info("Semantic dedup: %d candidate pairs", len(pairs))

    clusters = cluster_documents(embeddings, pairs, config)
    clusters = select_representatives(clusters, documents, criteria)

    total = len(documents)
    unique = len(clusters)
    removed = max(total - unique, 0)
    ratio = removed / total if total else 0.0
    elapsed_ms = round((time.perf_counter() - started) * 1000)

    logger.info(
        "Semantic dedup complete: %d -> %d documents (%.1f%% reduction) in %dms",
        total,
        unique,
        ratio * 100,
        elapsed_ms,
    )
    return DeduplicationResult(
        clusters=clusters,
        total_clusters=len(clusters),
        singleton_count=sum(1 for c in clusters if c.type == ClusterType.SINGLETON),
        original_doc_count=total,
        unique_doc_count=unique,
        duplicates_removed=removed,
        reduction_ratio=ratio,
        similarity_pairs=[p for p in pairs if p.type != SimilarityType.RELATED],
        config_used=config,
        processing_time_ms=elapsed_ms,
    )


def dedup_summary(result: DeduplicationResult) -> dict[str, Any]:
    return {
        "original_count": result.original_doc_count,
        "unique_count": result.unique_doc_count,
        "reduction_percent": f"{result.reduction_ratio * 100:.1f}%",
        "duplicate_groups": sum(1 for c in result.clusters if c.type == ClusterType.DUPLICATE_GROUP),
        "similar_groups": sum(1 for c in result.clusters if c.type == ClusterType.SIMILAR_GROUP),
        "singletons": result.singleton_count,
        "processing_time": f"{result.processing_time_ms}ms",
        "representatives": [
            {
                "cluster_id": c.cluster_id,
                "type": c.type.value,
                "representative": c.representative_id,
                "member_count": len(c.document_ids),
                "avg_similarity": f"{c.avg_internal_similarity:.3f}",
            }
            for c in result.clusters
        ],
    }
