"""HTTP tests for the FastAPI surface, with fake model handles injected."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from api.dependencies import get_embedding_service, get_ner_service, get_scrubber
from config import Settings
from errors import ModelLoadError, NERChunkError
from main import app
from scrubber.pipeline import PIIScrubber
from services.embedding_service import EmbeddingService
from services.ner_service import NERService


class ConstantModel:
    """SentenceTransformer stand-in returning the same vector for every text."""

    def encode(self, text, normalize_embeddings=False, output_value=None, batch_size=None):
        return [0.5, 0.5, 0.5, 0.5]


@pytest.fixture
def client(settings: Settings, scrubber: PIIScrubber):
    ner = NERService(settings, pipeline_factory=MagicMock())
    embeddings = EmbeddingService(settings, model_factory=MagicMock(return_value=ConstantModel()))
    app.dependency_overrides[get_scrubber] = lambda: scrubber
    app.dependency_overrides[get_ner_service] = lambda: ner
    app.dependency_overrides[get_embedding_service] = lambda: embeddings
    yield TestClient(app)
    app.dependency_overrides.clear()


# -----------------------------------------------------------------------
# Health
# -----------------------------------------------------------------------


class TestHealth:

    def test_reports_model_state(self, client: TestClient, settings: Settings):
        response = client.get("/api/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["ner_model"] == settings.ner_model
        assert data["ner_loaded"] is False
        assert data["embedding_loaded"] is False


# -----------------------------------------------------------------------
# Scrub
# -----------------------------------------------------------------------


class TestScrub:

    def test_regex_only(self, client: TestClient):
        response = client.post(
            "/api/scrub/",
            json={"text": "Patient SSN: 123-45-6789 for insurance verification.", "regex_only": True},
        )
        assert response.status_code == 200
        data = response.json()
        assert "123-45-6789" not in data["text"]
        assert data["replacements"]["123-45-6789"] == "[SSN_1]"
        assert data["count"] == len(data["replacements"])
        assert data["confidence"] is None

    def test_full_mode_reports_confidence(self, client: TestClient):
        response = client.post("/api/scrub/", json={"text": "No identifiers in this note."})
        assert response.status_code == 200
        assert response.json()["confidence"] == 100.0

    def test_ner_timeout_maps_to_504(self, client: TestClient, mock_ner: AsyncMock):
        mock_ner.label.side_effect = NERChunkError(2, timed_out=True)
        response = client.post("/api/scrub/", json={"text": "Seen today by Maria."})
        assert response.status_code == 504
        assert response.json()["chunk_index"] == 2

    def test_ner_failure_maps_to_502(self, client: TestClient, mock_ner: AsyncMock):
        mock_ner.label.side_effect = NERChunkError(0, cause=RuntimeError("boom"))
        response = client.post("/api/scrub/", json={"text": "Seen today by Maria."})
        assert response.status_code == 502

    def test_model_load_failure_maps_to_503(self, client: TestClient, mock_ner: AsyncMock):
        mock_ner.label.side_effect = ModelLoadError("ner")
        response = client.post("/api/scrub/", json={"text": "Seen today by Maria."})
        assert response.status_code == 503
        assert response.json()["capability"] == "ner"

    def test_missing_text_is_rejected(self, client: TestClient):
        response = client.post("/api/scrub/", json={"regex_only": True})
        assert response.status_code == 422


# -----------------------------------------------------------------------
# Fingerprints
# -----------------------------------------------------------------------


class TestFingerprints:

    def test_fingerprint_and_compare(self, client: TestClient):
        first = client.post(
            "/api/fingerprints/", json={"filename": "cbc.txt", "text": "WBC 7.2 on 01/05/2024"}
        ).json()
        second = client.post(
            "/api/fingerprints/", json={"filename": "cbc.txt", "text": "WBC 7.2 on 02/06/2024"}
        ).json()
        assert first["document_type"] == "lab_report"
        assert first["content_hash"] == second["content_hash"]

        response = client.post("/api/fingerprints/compare", json={"first": second, "second": first})
        assert response.status_code == 200
        assert response.json()["difference_type"] == "exact"
        assert response.json()["is_duplicate"] is True


# -----------------------------------------------------------------------
# Templates
# -----------------------------------------------------------------------


class TestTemplates:

    @staticmethod
    def documents():
        header = "CITY GENERAL HOSPITAL\nDepartment of Internal Medicine"
        return [
            {"id": f"doc{i}", "content": f"{header}\nVisit note for patient number {i}"}
            for i in range(3)
        ]

    def test_process_corpus(self, client: TestClient):
        response = client.post("/api/templates/corpus", json={"documents": self.documents()})
        assert response.status_code == 200
        data = response.json()
        assert data["stats"]["templates_detected"] == 1
        assert len(data["results"]) == 3

    def test_invalid_config_is_rejected(self, client: TestClient):
        response = client.post(
            "/api/templates/corpus",
            json={"documents": self.documents(), "config": {"min_ngram_size": 9}},
        )
        assert response.status_code == 422


# -----------------------------------------------------------------------
# Dedup
# -----------------------------------------------------------------------


class TestDedup:

    def test_identical_embeddings_collapse(self, client: TestClient):
        response = client.post(
            "/api/dedup/",
            json={
                "documents": [{"id": f"d{i}", "content": f"note {i}"} for i in range(3)],
                "config": {"embedding_dimensions": 4},
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert data["total_clusters"] == 1
        assert data["clusters"][0]["type"] == "DUPLICATE_GROUP"
        assert data["duplicates_removed"] == 2

    def test_invalid_config_is_rejected(self, client: TestClient):
        response = client.post(
            "/api/dedup/",
            json={"documents": [], "config": {"chunk_size": 10, "chunk_overlap": 20}},
        )
        assert response.status_code == 422


# -----------------------------------------------------------------------
# Timeline
# -----------------------------------------------------------------------


class TestTimeline:

    def test_builds_timeline(self, client: TestClient):
        response = client.post(
            "/api/timeline/",
            json={
                "files": [
                    {"id": "b", "filename": "note_2024-05-01.txt", "scrubbed_text": "Follow up visit"},
                    {"id": "a", "filename": "note_2024-01-01.txt", "scrubbed_text": "Initial consult"},
                ],
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert [d["id"] for d in data["documents"]] == ["a", "b"]
        assert data["summary"]["total_documents"] == 2
