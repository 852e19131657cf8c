from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException
from pydantic import ValidationError

from corpus.templates import process_corpus
from schemas.api import TemplateCorpusRequest
from schemas.templates import NGramConfig, ProcessedCorpus

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/corpus", response_model=ProcessedCorpus)
def build_template_corpus(body: TemplateCorpusRequest):
    """Detect templates across the documents and strip them from each one."""
    try:
        config = NGramConfig.from_settings(**(body.config or {}))
    except ValidationError as exc:
        raise HTTPException(
            status_code=422,
            detail=exc.errors(include_url=False, include_context=False),
        ) from exc
    return process_corpus(body.documents, config)
