"""Tests for corpus.dedup: embeddings, union-find clustering and representative selection."""

from __future__ import annotations

from datetime import datetime
from unittest.mock import AsyncMock

import pytest

from corpus.dedup import (
    UnionFind,
    cluster_documents,
    dedup_summary,
    deduplicate,
    find_similar_pairs,
    generate_embeddings,
    score_document,
    select_representatives,
)
from errors import ModelLoadError, SemanticDedupError
from schemas.dedup import (
    ClusterType,
    DedupDocumentInput,
    DocumentEmbedding,
    EmbeddingConfig,
    SelectionCriteria,
    SimilarityType,
)


# cosine similarity 0.4
LOW_A = [1.0, 0.0, 0.0, 0.0]
LOW_B = [0.4, 0.916515138991168, 0.0, 0.0]


@pytest.fixture
def config() -> EmbeddingConfig:
    return EmbeddingConfig(embedding_dimensions=4)


def make_embedding(doc_id: str, vector: list[float]) -> DocumentEmbedding:
    return DocumentEmbedding(
        document_id=doc_id,
        embedding=vector,
        embedding_dim=len(vector),
        chunk_count=1,
        text_length=10,
    )


def docs(*contents: str) -> list[DedupDocumentInput]:
    return [DedupDocumentInput(id=f"d{i}", content=c) for i, c in enumerate(contents)]


# -----------------------------------------------------------------------
# UnionFind
# -----------------------------------------------------------------------


class TestUnionFind:

    def test_union_merges_sets(self):
        sets = UnionFind(["a", "b", "c"])
        sets.union("a", "b")
        assert sets.find("a") == sets.find("b")
        assert sets.find("c") != sets.find("a")

    def test_long_chain_does_not_recurse(self):
        keys = [f"k{i}" for i in range(5000)]
        sets = UnionFind(keys)
        for left, right in zip(keys, keys[1:]):
            sets.union(right, left)
        root = sets.find(keys[0])
        assert all(sets.find(k) == root for k in keys)

    def test_add_is_idempotent(self):
        sets = UnionFind(["a"])
        sets.union("a", "a")
        sets.add("a")
        assert sets.find("a") == "a"


# -----------------------------------------------------------------------
# Embeddings
# -----------------------------------------------------------------------


class TestGenerateEmbeddings:

    @pytest.mark.asyncio
    async def test_embeds_each_document(self, config, make_embedder):
        embedder = make_embedder({"alpha": [1.0, 0.0, 0.0, 0.0]})
        [emb] = await generate_embeddings(docs("alpha text"), embedder, config)
        assert emb.embedding == [1.0, 0.0, 0.0, 0.0]
        assert emb.embedding_dim == 4
        assert emb.chunk_count == 1
        assert emb.text_length == len("alpha text")

    @pytest.mark.asyncio
    async def test_long_document_is_chunked_and_pooled(self, make_embedder):
        config = EmbeddingConfig(embedding_dimensions=2, chunk_size=10, chunk_overlap=0)
        embedder = make_embedder({"aaaa": [1.0, 0.0], "bbbb": [0.0, 1.0]})
        [emb] = await generate_embeddings(docs("aaaaaaaaaabbbbbbbbbb"), embedder, config)
        assert emb.chunk_count == 2
        assert emb.embedding == [0.5, 0.5]

    @pytest.mark.asyncio
    async def test_first_chunk_aggregation(self, make_embedder):
        config = EmbeddingConfig(
            embedding_dimensions=2, chunk_size=10, chunk_overlap=0, aggregate_chunks="first"
        )
        embedder = make_embedder({"aaaa": [1.0, 0.0], "bbbb": [0.0, 1.0]})
        [emb] = await generate_embeddings(docs("aaaaaaaaaabbbbbbbbbb"), embedder, config)
        assert emb.embedding == [1.0, 0.0]

    @pytest.mark.asyncio
    async def test_empty_document_gets_zero_vector(self, config, make_embedder):
        embedder = make_embedder({"alpha": [1.0, 0.0, 0.0, 0.0]})
        [emb] = await generate_embeddings(docs("   "), embedder, config)
        assert emb.embedding == [0.0, 0.0, 0.0, 0.0]
        assert embedder.calls == []

    @pytest.mark.asyncio
    async def test_embedder_failure_is_tagged(self, config):
        embedder = AsyncMock()
        embedder.embed.side_effect = RuntimeError("CUDA out of memory")
        with pytest.raises(SemanticDedupError) as excinfo:
            await generate_embeddings(docs("alpha"), embedder, config)
        assert excinfo.value.phase == "embedding"

    @pytest.mark.asyncio
    async def test_model_load_error_propagates(self, config):
        embedder = AsyncMock()
        embedder.embed.side_effect = ModelLoadError("embedding")
        with pytest.raises(ModelLoadError):
            await generate_embeddings(docs("alpha"), embedder, config)


# -----------------------------------------------------------------------
# Pairs and clusters
# -----------------------------------------------------------------------


class TestSimilarPairs:

    def test_pair_types_and_order(self, config):
        embeddings = [
            make_embedding("a", [1.0, 0.0, 0.0, 0.0]),
            make_embedding("b", [1.0, 0.0, 0.0, 0.0]),
            make_embedding("c", [0.9, 0.3, 0.0, 0.0]),
            make_embedding("d", [0.6, 0.8, 0.0, 0.0]),
        ]
        pairs = find_similar_pairs(embeddings, config)
        assert pairs[0].similarity == 1.0
        assert pairs[0].type == SimilarityType.DUPLICATE
        assert [p.similarity for p in pairs] == sorted((p.similarity for p in pairs), reverse=True)
        by_ids = {(p.doc_id1, p.doc_id2): p for p in pairs}
        assert by_ids[("a", "c")].type == SimilarityType.SIMILAR
        assert by_ids[("a", "d")].type == SimilarityType.RELATED

    def test_pairs_below_half_are_dropped(self, config):
        embeddings = [make_embedding("a", [1.0, 0.0, 0.0, 0.0]), make_embedding("b", [0.0, 1.0, 0.0, 0.0])]
        assert find_similar_pairs(embeddings, config) == []

    def test_low_threshold_keeps_weaker_pairs(self):
        config = EmbeddingConfig(embedding_dimensions=4, similarity_threshold=0.3)
        [pair] = find_similar_pairs([make_embedding("a", LOW_A), make_embedding("b", LOW_B)], config)
        assert pair.similarity == pytest.approx(0.4)
        assert pair.type == SimilarityType.SIMILAR

    def test_dimension_mismatch_is_tagged(self, config):
        embeddings = [make_embedding("a", [1.0, 0.0]), make_embedding("b", [1.0, 0.0, 0.0])]
        with pytest.raises(SemanticDedupError) as excinfo:
            find_similar_pairs(embeddings, config)
        assert excinfo.value.phase == "similarity"


class TestClusterDocuments:

    def test_identical_embeddings_form_one_duplicate_group(self, config):
        embeddings = [make_embedding(d, [0.5, 0.5, 0.5, 0.5]) for d in ("a", "b", "c")]
        clusters = cluster_documents(embeddings, find_similar_pairs(embeddings, config), config)
        assert len(clusters) == 1
        assert clusters[0].type == ClusterType.DUPLICATE_GROUP
        assert sorted(clusters[0].document_ids) == ["a", "b", "c"]
        assert clusters[0].centroid == [0.5, 0.5, 0.5, 0.5]

    def test_orthogonal_embeddings_are_singletons(self, config):
        embeddings = [
            make_embedding("a", [1.0, 0.0, 0.0, 0.0]),
            make_embedding("b", [0.0, 1.0, 0.0, 0.0]),
            make_embedding("c", [0.0, 0.0, 1.0, 0.0]),
        ]
        clusters = cluster_documents(embeddings, find_similar_pairs(embeddings, config), config)
        assert [c.type for c in clusters] == [ClusterType.SINGLETON] * 3
        assert [c.cluster_id for c in clusters] == ["cluster_0", "cluster_1", "cluster_2"]
        assert all(c.avg_internal_similarity == 1.0 for c in clusters)

    def test_similar_group(self, config):
        embeddings = [make_embedding("a", [1.0, 0.0, 0.0, 0.0]), make_embedding("c", [0.9, 0.3, 0.0, 0.0])]
        [cluster] = cluster_documents(embeddings, find_similar_pairs(embeddings, config), config)
        assert cluster.type == ClusterType.SIMILAR_GROUP

    def test_threshold_below_half_unions_pair(self):
        config = EmbeddingConfig(embedding_dimensions=4, similarity_threshold=0.3)
        embeddings = [make_embedding("a", LOW_A), make_embedding("b", LOW_B)]
        [cluster] = cluster_documents(embeddings, find_similar_pairs(embeddings, config), config)
        assert sorted(cluster.document_ids) == ["a", "b"]

    def test_no_documents(self, config):
        assert cluster_documents([], [], config) == []


# -----------------------------------------------------------------------
# Representatives
# -----------------------------------------------------------------------


class TestRepresentatives:

    def test_prefers_longer_denser_document(self, config):
        documents = [
            DedupDocumentInput(id="short", content="brief note"),
            DedupDocumentInput(id="rich", content="Chest CT shows lung findings; BP stable, HR normal"),
        ]
        embeddings = [make_embedding(d.id, [0.5, 0.5, 0.5, 0.5]) for d in documents]
        clusters = cluster_documents(embeddings, find_similar_pairs(embeddings, config), config)
        [cluster] = select_representatives(clusters, documents)
        assert cluster.representative_id == "rich"
        assert cluster.representative_score > 0

    def test_tie_goes_to_first_member(self, config):
        documents = [
            DedupDocumentInput(id="first", content="same content"),
            DedupDocumentInput(id="second", content="same content"),
        ]
        embeddings = [make_embedding(d.id, [0.5, 0.5, 0.5, 0.5]) for d in documents]
        clusters = cluster_documents(embeddings, find_similar_pairs(embeddings, config), config)
        [cluster] = select_representatives(clusters, documents)
        assert cluster.representative_id == "first"

    def test_singleton_scores_one(self, config):
        documents = docs("only one")
        clusters = cluster_documents([make_embedding("d0", [1.0, 0.0, 0.0, 0.0])], [], config)
        [cluster] = select_representatives(clusters, documents)
        assert cluster.representative_id == "d0"
        assert cluster.representative_score == 1.0

    def test_missing_documents_are_tagged(self, config):
        embeddings = [make_embedding(d, [0.5, 0.5, 0.5, 0.5]) for d in ("a", "b")]
        clusters = cluster_documents(embeddings, find_similar_pairs(embeddings, config), config)
        with pytest.raises(SemanticDedupError) as excinfo:
            select_representatives(clusters, [])
        assert excinfo.value.phase == "selection"

    def test_score_components(self):
        criteria = SelectionCriteria()
        dated = DedupDocumentInput(id="a", content="x" * 10, date=datetime(2024, 1, 1), ocr_quality=1.0)
        # length 1.0*0.3 + recency 0.5*0.2 + quality 1.0*0.3 + density 0
        assert score_document(dated, 10, criteria) == pytest.approx(0.7)
        undated = DedupDocumentInput(id="b", content="x" * 5)
        # length 0.5*0.3 + default quality 0.8*0.3
        assert score_document(undated, 10, criteria) == pytest.approx(0.39)


# -----------------------------------------------------------------------
# Full pipeline
# -----------------------------------------------------------------------


class TestDeduplicate:

    @pytest.mark.asyncio
    async def test_identical_documents_collapse(self, config, make_embedder):
        embedder = make_embedder({"": [0.5, 0.5, 0.5, 0.5]})
        result = await deduplicate(docs("alpha", "beta", "gamma"), embedder, config)
        assert result.total_clusters == 1
        assert result.clusters[0].type == ClusterType.DUPLICATE_GROUP
        assert result.original_doc_count == 3
        assert result.unique_doc_count == 1
        assert result.duplicates_removed == 2
        assert result.reduction_ratio == pytest.approx(2 / 3)
        assert len(result.similarity_pairs) == 3

    @pytest.mark.asyncio
    async def test_orthogonal_documents_stay_apart(self, config, make_embedder):
        embedder = make_embedder({
            "alpha": [1.0, 0.0, 0.0, 0.0],
            "beta": [0.0, 1.0, 0.0, 0.0],
            "gamma": [0.0, 0.0, 1.0, 0.0],
        })
        result = await deduplicate(docs("alpha", "beta", "gamma"), embedder, config)
        assert result.total_clusters == 3
        assert result.singleton_count == 3
        assert result.duplicates_removed == 0
        assert result.reduction_ratio == 0.0
        assert result.similarity_pairs == []

    @pytest.mark.asyncio
    async def test_related_pairs_are_not_reported(self, config, make_embedder):
        embedder = make_embedder({"alpha": [1.0, 0.0, 0.0, 0.0], "beta": [0.6, 0.8, 0.0, 0.0]})
        result = await deduplicate(docs("alpha", "beta"), embedder, config)
        assert result.similarity_pairs == []
        assert result.total_clusters == 2

    @pytest.mark.asyncio
    async def test_threshold_below_half_still_unions(self, make_embedder):
        config = EmbeddingConfig(embedding_dimensions=4, similarity_threshold=0.3)
        embedder = make_embedder({"alpha": LOW_A, "beta": LOW_B})
        result = await deduplicate(docs("alpha", "beta"), embedder, config)
        assert result.total_clusters == 1
        assert result.clusters[0].type == ClusterType.SIMILAR_GROUP
        assert [p.type for p in result.similarity_pairs] == [SimilarityType.SIMILAR]

    @pytest.mark.asyncio
    async def test_no_documents(self, config, make_embedder):
        result = await deduplicate([], make_embedder({}), config)
        assert result.total_clusters == 0
        assert result.reduction_ratio == 0.0

    @pytest.mark.asyncio
    async def test_summary(self, config, make_embedder):
        embedder = make_embedder({"": [0.5, 0.5, 0.5, 0.5]})
        result = await deduplicate(docs("alpha", "beta"), embedder, config)
        summary = dedup_summary(result)
        assert summary["original_count"] == 2
        assert summary["unique_count"] == 1
        assert summary["duplicate_groups"] == 1
        assert summary["reduction_percent"] == "50.0%"


class TestEmbeddingConfig:

    def test_overlap_must_be_smaller_than_chunk(self):
        with pytest.raises(ValueError):
            EmbeddingConfig(chunk_size=100, chunk_overlap=100)

    def test_thresholds_are_ordered(self):
        with pytest.raises(ValueError):
            EmbeddingConfig(similarity_threshold=0.9, near_duplicate_threshold=0.8)
