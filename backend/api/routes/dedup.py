from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import ValidationError

from api.dependencies import get_embedding_service
from corpus.dedup import deduplicate
from schemas.api import DedupRequest
from schemas.dedup import DeduplicationResult, EmbeddingConfig
from services.embedding_service import EmbeddingService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=DeduplicationResult)
async def deduplicate_documents(
    body: DedupRequest,
    embeddings: EmbeddingService = Depends(get_embedding_service),
):
    """Cluster semantically duplicate documents and pick a representative for each."""
    try:
        config = EmbeddingConfig.from_settings(**(body.config or {}))
    except ValidationError as exc:
        raise HTTPException(
            status_code=422,
            detail=exc.errors(include_url=False, include_context=False),
        ) from exc
    return await deduplicate(body.documents, embeddings, config, body.criteria)
