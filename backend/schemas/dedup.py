from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator

from config import Settings, get_settings


# --- Configuration ---

class EmbeddingConfig(BaseModel):
    model_id: str = "all-MiniLM-L6-v2"
    max_sequence_length: int = Field(256, ge=1)
    pooling_strategy: Literal["mean", "cls"] = "mean"
    chunk_size: int = Field(512, ge=1)          # characters
    chunk_overlap: int = Field(50, ge=0)
    aggregate_chunks: Literal["mean", "first", "max_pool"] = "mean"
    embedding_dimensions: int = Field(384, ge=1)
    similarity_threshold: float = Field(0.85, ge=0.0, le=1.0)
    near_duplicate_threshold: float = Field(0.95, ge=0.0, le=1.0)
    min_cluster_size: int = Field(2, ge=1)
    max_cluster_distance: float = Field(0.15, ge=0.0)

    model_config = {"frozen": True, "protected_namespaces": ()}

    @model_validator(mode="after")
    def validate_chunking(self) -> "EmbeddingConfig":
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError("chunk_overlap must be smaller than chunk_size")
        if self.near_duplicate_threshold < self.similarity_threshold:
            raise ValueError("near_duplicate_threshold must be >= similarity_threshold")
        return self

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **overrides: Any) -> "EmbeddingConfig":
        settings = settings or get_settings()
        values: dict[str, Any] = {
            "model_id": settings.embedding_model,
            "chunk_size": settings.dedup_chunk_size,
            "chunk_overlap": settings.dedup_chunk_overlap,
            "aggregate_chunks": settings.dedup_aggregate_chunks,
            "embedding_dimensions": settings.embedding_dimensions,
            "similarity_threshold": settings.dedup_similarity_threshold,
            "near_duplicate_threshold": settings.dedup_near_duplicate_threshold,
        }
        values.update(overrides)
        return cls(**values)


class SelectionCriteria(BaseModel):
    """Weights for picking a cluster representative.  Expected to sum to ~1."""

    length_weight: float = Field(0.3, ge=0.0)
    recency_weight: float = Field(0.2, ge=0.0)
    quality_weight: float = Field(0.3, ge=0.0)
    medical_density_weight: float = Field(0.2, ge=0.0)
    prefer_original_order: bool = True

    model_config = {"frozen": True}


# --- Inputs ---

class DedupDocumentInput(BaseModel):
    id: str
    content: str
    date: datetime | None = None
    ocr_quality: float | None = Field(None, ge=0.0, le=1.0)


# --- Embeddings and pairs ---

class DocumentEmbedding(BaseModel):
    document_id: str
    embedding: list[float]
    embedding_dim: int = Field(..., ge=0)
    chunk_count: int = Field(..., ge=0)
    text_length: int = Field(..., ge=0)

    @model_validator(mode="after")
    def validate_dimension(self) -> "DocumentEmbedding":
        if len(self.embedding) != self.embedding_dim:
            raise ValueError(
                f"embedding has {len(self.embedding)} values, expected {self.embedding_dim}"
            )
        return self


class SimilarityType(str, Enum):
    DUPLICATE = "DUPLICATE"
    SIMILAR = "SIMILAR"
    RELATED = "RELATED"


class SimilarityPair(BaseModel):
    doc_id1: str
    doc_id2: str
    similarity: float = Field(..., ge=-1.0, le=1.0)
    type: SimilarityType


# --- Clusters ---

class ClusterType(str, Enum):
    SINGLETON = "SINGLETON"
    DUPLICATE_GROUP = "DUPLICATE_GROUP"
    SIMILAR_GROUP = "SIMILAR_GROUP"
    TOPIC_GROUP = "TOPIC_GROUP"


class DocumentCluster(BaseModel):
    cluster_id: str
    type: ClusterType
    document_ids: list[str] = Field(..., min_length=1)
    representative_id: str
    representative_score: float = Field(0.0, ge=0.0)
    avg_internal_similarity: float = Field(..., ge=-1.0, le=1.0)
    min_internal_similarity: float = Field(..., ge=-1.0, le=1.0)
    centroid: list[float] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_membership(self) -> "DocumentCluster":
        if len(set(self.document_ids)) != len(self.document_ids):
            raise ValueError("cluster members must be unique")
        if self.representative_id not in self.document_ids:
            raise ValueError("representative must be a cluster member")
        if (self.type == ClusterType.SINGLETON) != (len(self.document_ids) == 1):
            raise ValueError("SINGLETON clusters have exactly one member")
        return self


class DeduplicationResult(BaseModel):
    clusters: list[DocumentCluster] = Field(default_factory=list)
    total_clusters: int = Field(..., ge=0)
    singleton_count: int = Field(..., ge=0)
    original_doc_count: int = Field(..., ge=0)
    unique_doc_count: int = Field(..., ge=0)
    duplicates_removed: int = Field(..., ge=0)
    reduction_ratio: float = Field(..., ge=0.0, le=1.0)
    similarity_pairs: list[SimilarityPair] = Field(default_factory=list)
    config_used: EmbeddingConfig
    processing_time_ms: int = Field(0, ge=0)
