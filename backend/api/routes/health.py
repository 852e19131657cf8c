from __future__ import annotations

from fastapi import APIRouter, Depends

from api.dependencies import get_embedding_service, get_ner_service
from config import get_settings
from schemas.api import HealthResponse
from services.embedding_service import EmbeddingService
from services.ner_service import NERService

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(
    ner: NERService = Depends(get_ner_service),
    embeddings: EmbeddingService = Depends(get_embedding_service),
):
    return HealthResponse(
        ner_model=ner.model_id,
        ner_loaded=ner.is_loaded,
        embedding_model=get_settings().embedding_model,
        embedding_loaded=embeddings.is_loaded,
    )
