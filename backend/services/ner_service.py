from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from config import Settings, get_settings
from errors import ModelLoadError, NERChunkError
from schemas.redaction import PIISpan

logger = logging.getLogger(__name__)

PipelineFactory = Callable[[str], Callable[[str], list[dict[str, Any]]]]


def _transformers_pipeline(model_id: str) -> Callable[[str], list[dict[str, Any]]]:
    from transformers import pipeline

    return pipeline(
        "token-classification",
        model=model_id,
        aggregation_strategy="simple",
        ignore_labels=["O"],
    )


class NERService:
    """Handle to the external span-labelling model.

    Built once at startup and shared.  The model is loaded at most once:
    concurrent first callers wait on the same load.  Inference runs in
    the default executor and every chunk is bounded by a deadline.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        pipeline_factory: PipelineFactory | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._factory = pipeline_factory or _transformers_pipeline
        self._pipeline: Callable[[str], list[dict[str, Any]]] | None = None
        self._lock = asyncio.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._pipeline is not None

    @property
    def model_id(self) -> str:
        return self._settings.ner_model

    async def load(self) -> None:
        if self._pipeline is not None:
            return
        async with self._lock:
            if self._pipeline is not None:
                return
            logger.info("Loading NER model: %s", self.model_id)
            loop = asyncio.get_event_loop()
            try:
                self._pipeline = await loop.run_in_executor(None, self._factory, self.model_id)
            except Exception as exc:
                self._pipeline = None
                raise ModelLoadError("ner", exc) from exc
            logger.info("NER model loaded")

    async def label(self, chunk: str, chunk_index: int = 0) -> list[PIISpan]:
        """Run the model over one chunk.

        Raises ``NERChunkError`` on failure or when the call exceeds
        ``ner_timeout_seconds``.
        """
        await self.load()
        loop = asyncio.get_event_loop()
        try:
            raw = await asyncio.wait_for(
                loop.run_in_executor(None, self._pipeline, chunk),
                timeout=self._settings.ner_timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            raise NERChunkError(chunk_index, timed_out=True, cause=exc) from exc
        except Exception as exc:
            raise NERChunkError(chunk_index, cause=exc) from exc

        return [self._to_span(item, chunk) for item in raw or []]

    @staticmethod
    def _to_span(item: dict[str, Any], chunk: str) -> PIISpan:
        start = int(item["start"])
        end = int(item["end"])
        label = item.get("entity_group") or item.get("entity") or ""
        return PIISpan(
            label=label,
            start=start,
            end=end,
            score=float(item.get("score", 0.0)),
            text=chunk[start:end],
        )
