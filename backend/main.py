import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import get_settings
from errors import ModelLoadError, NERChunkError, SemanticDedupError, TemplateDetectionError
from api.routes import dedup, fingerprints, health, redaction, templates, timeline
from scrubber.chunking import SentenceSplitter
from scrubber.pipeline import PIIScrubber
from services.embedding_service import EmbeddingService
from services.ner_service import NERService

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting MedScrub API")

    # Models load lazily on first use
    ner_service = NERService(settings)
    app.state.ner_service = ner_service
    app.state.embedding_service = EmbeddingService(settings)
    app.state.scrubber = PIIScrubber(
        ner=ner_service,
        splitter=SentenceSplitter(settings),
        settings=settings,
    )
    logger.info(
        "NER model %s, embedding model %s, segmenter %s",
        settings.ner_model,
        settings.embedding_model,
        settings.sentence_segmenter,
    )
    yield
    logger.info("Shutting down MedScrub API")


app = FastAPI(
    title="MedScrub",
    description="PHI redaction, fingerprinting and deduplication for medical records",
    version="0.1.0",
    lifespan=lifespan,
)

cors_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "X-Requested-With"],
)


# --- Error mapping ---

@app.exception_handler(ModelLoadError)
async def model_load_error_handler(request: Request, exc: ModelLoadError):
    logger.error("Model unavailable (%s): %s", exc.capability, exc)
    return JSONResponse(
        status_code=503,
        content={"detail": str(exc), "capability": exc.capability},
    )


@app.exception_handler(NERChunkError)
async def ner_chunk_error_handler(request: Request, exc: NERChunkError):
    logger.error("NER failed on chunk %d (timed_out=%s)", exc.chunk_index, exc.timed_out)
    return JSONResponse(
        status_code=504 if exc.timed_out else 502,
        content={"detail": str(exc), "chunk_index": exc.chunk_index},
    )


@app.exception_handler(SemanticDedupError)
async def dedup_error_handler(request: Request, exc: SemanticDedupError):
    logger.error("Semantic dedup failed in %s phase: %s", exc.phase, exc)
    return JSONResponse(status_code=502, content={"detail": str(exc), "phase": exc.phase})


@app.exception_handler(TemplateDetectionError)
async def template_error_handler(request: Request, exc: TemplateDetectionError):
    return JSONResponse(
        status_code=422,
        content={"detail": str(exc), "document_id": exc.document_id},
    )


app.include_router(redaction.router, prefix="/api/scrub", tags=["redaction"])
app.include_router(fingerprints.router, prefix="/api/fingerprints", tags=["fingerprints"])
app.include_router(templates.router, prefix="/api/templates", tags=["templates"])
app.include_router(dedup.router, prefix="/api/dedup", tags=["dedup"])
app.include_router(timeline.router, prefix="/api/timeline", tags=["timeline"])
app.include_router(health.router, prefix="/api", tags=["health"])
