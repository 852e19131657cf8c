from fastapi import Request

from scrubber.pipeline import PIIScrubber
from services.embedding_service import EmbeddingService
from services.ner_service import NERService

# Handles are built once in the app lifespan and read from app.state.


def get_scrubber(request: Request) -> PIIScrubber:
    return request.app.state.scrubber


def get_ner_service(request: Request) -> NERService:
    return request.app.state.ner_service


def get_embedding_service(request: Request) -> EmbeddingService:
    return request.app.state.embedding_service
