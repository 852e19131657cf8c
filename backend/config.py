from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    log_level: str = "INFO"

    # CORS: comma-separated origins allowed to access the API
    cors_origins: str = "http://localhost:5173"

    # NER (external span-labelling model)
    ner_model: str = "dslim/bert-base-NER"
    ner_min_score: float = 0.85
    ner_timeout_seconds: float = 30.0
    ner_chunk_chars: int = 2000    # max characters per model call
    ner_target_labels: list[str] = ["PER", "LOC", "ORG"]

    # Sentence segmentation: "spacy" or "regex"
    sentence_segmenter: str = "spacy"
    spacy_language: str = "en"

    # Embeddings
    embedding_model: str = "all-MiniLM-L6-v2"
    embedding_dimensions: int = 384
    embedding_timeout_seconds: float = 30.0

    # Template detection
    template_min_ngram: int = 2           # lines
    template_max_ngram: int = 5
    template_threshold: float = 0.3       # fraction of corpus
    template_rare_threshold: float = 0.05
    template_strip_numbers: bool = False  # keep numbers for medical data
    template_max_documents: int = 500
    template_min_documents: int = 3

    # Semantic dedup
    dedup_similarity_threshold: float = 0.85
    dedup_near_duplicate_threshold: float = 0.95
    dedup_chunk_size: int = 512    # characters per chunk
    dedup_chunk_overlap: int = 50
    dedup_aggregate_chunks: str = "mean"

    # Pairwise duplicate analysis
    near_duplicate_similarity: float = 0.95
    same_event_similarity: float = 0.70
    same_event_window_hours: float = 72.0

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
