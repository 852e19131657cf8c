from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from config import Settings, get_settings
from corpus.vectors import normalize_vector
from errors import ModelLoadError

logger = logging.getLogger(__name__)

ModelFactory = Callable[[str], Any]


def _sentence_transformer(model_id: str) -> Any:
    from sentence_transformers import SentenceTransformer

    return SentenceTransformer(model_id)


class EmbeddingService:
    """Local embedding generation using sentence-transformers.

    Loads the model once on first use; concurrent first callers share the
    same load.  All inference is local, nothing leaves the machine.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        model_factory: ModelFactory | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._factory = model_factory or _sentence_transformer
        self._model: Any = None
        self._model_id: str | None = None
        self._lock = asyncio.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._model is not None

    async def load(self, model_id: str | None = None) -> None:
        model_id = model_id or self._settings.embedding_model
        if self._model is not None and self._model_id == model_id:
            return
        async with self._lock:
            if self._model is not None and self._model_id == model_id:
                return
            logger.info("Loading embedding model: %s", model_id)
            loop = asyncio.get_event_loop()
            try:
                self._model = await loop.run_in_executor(None, self._factory, model_id)
            except Exception as exc:
                self._model = None
                self._model_id = None
                raise ModelLoadError("embedding", exc) from exc
            self._model_id = model_id
            logger.info("Embedding model loaded (dim=%d)", self._settings.embedding_dimensions)

    def _encode(self, text: str, pooling: str, normalize: bool) -> list[float]:
        if pooling == "cls":
            # first token of the last hidden layer
            tokens = self._model.encode(text, output_value="token_embeddings")
            vector = [float(x) for x in tokens[0]]
            return normalize_vector(vector) if normalize else vector
        vector = self._model.encode(text, normalize_embeddings=normalize)
        return [float(x) for x in vector]

    async def embed(
        self,
        text: str,
        pooling: str = "mean",
        normalize: bool = True,
        model_id: str | None = None,
    ) -> list[float]:
        """Embed a single text string.  Returns a fixed-dimension vector."""
        await self.load(model_id)
        loop = asyncio.get_event_loop()
        return await asyncio.wait_for(
            loop.run_in_executor(None, self._encode, text, pooling, normalize),
            timeout=self._settings.embedding_timeout_seconds,
        )

    async def embed_batch(self, texts: list[str], model_id: str | None = None) -> list[list[float]]:
        """Embed multiple texts in one model call."""
        if not texts:
            return []
        await self.load(model_id)
        loop = asyncio.get_event_loop()
        vectors = await loop.run_in_executor(
            None,
            lambda: self._model.encode(texts, normalize_embeddings=True, batch_size=64),
        )
        return [[float(x) for x in v] for v in vectors]
