"""Tests for services.timeline_service: date extraction and timeline assembly."""

from __future__ import annotations

from datetime import datetime

import pytest

from schemas.fingerprint import DifferenceType
from schemas.timeline import ProcessedFile
from services.timeline_service import build_timeline, extract_primary_date


class TestExtractPrimaryDate:

    @pytest.mark.parametrize(
        "filename, content, expected",
        [
            ("report_03-15-2024.pdf", "", datetime(2024, 3, 15)),
            ("labs_2024-03-01.txt", "", datetime(2024, 3, 1)),
            ("scan.pdf", "Study date: 04/02/2023", datetime(2023, 4, 2)),
            ("note.txt", "Seen Mar 5, 2024 in clinic", datetime(2024, 3, 5)),
        ],
    )
    def test_formats(self, filename, content, expected):
        assert extract_primary_date(filename, content) == expected

    def test_filename_wins_over_content(self):
        assert extract_primary_date("note_2022-01-10.txt", "Seen 05/06/2024") == datetime(2022, 1, 10)

    def test_unparseable_match_falls_through_to_next(self):
        content = "Ref 13/45/2024, seen 04/02/2023"
        assert extract_primary_date("note.txt", content) == datetime(2023, 4, 2)

    def test_only_the_start_of_content_is_searched(self):
        content = "x" * 600 + " 05/06/2024"
        assert extract_primary_date("note.txt", content) is None

    def test_no_date(self):
        assert extract_primary_date("notes.txt", "no date here") is None


class TestBuildTimeline:

    def test_orders_and_numbers_documents(self):
        files = [
            ProcessedFile(id="b", filename="note_2024-05-01.txt", scrubbed_text="Follow up visit stable"),
            ProcessedFile(id="a", filename="note_2024-01-01.txt", scrubbed_text="Initial consult findings"),
        ]
        timeline = build_timeline(files)
        assert [d.id for d in timeline.documents] == ["a", "b"]
        assert [d.document_number for d in timeline.documents] == [1, 2]

    def test_reverse_chronological(self):
        files = [
            ProcessedFile(id="a", filename="note_2024-01-01.txt", scrubbed_text="Initial consult findings"),
            ProcessedFile(id="b", filename="note_2024-05-01.txt", scrubbed_text="Follow up visit stable"),
        ]
        timeline = build_timeline(files, reverse_chronological=True)
        assert [d.id for d in timeline.documents] == ["b", "a"]

    def test_flags_exact_duplicate(self):
        text = "CBC panel: WBC 7.2, hemoglobin 13.1, platelets 240"
        files = [
            ProcessedFile(id="a", filename="labs_2024-01-01.txt", scrubbed_text=text),
            ProcessedFile(id="b", filename="labs_2024-02-01.txt", scrubbed_text=text),
        ]
        timeline = build_timeline(files)
        first, second = timeline.documents
        assert first.duplicate_analysis is None
        assert second.duplicate_analysis.difference_type == DifferenceType.EXACT
        assert second.duplicate_analysis.duplicate_of == first.fingerprint.content_hash
        assert timeline.summary.duplicates == 1
        assert timeline.summary.unique_documents == 1

    def test_skips_files_without_text(self):
        files = [
            ProcessedFile(id="a", filename="note_2024-01-01.txt", scrubbed_text="Initial consult findings"),
            ProcessedFile(id="b", filename="note_2024-02-01.txt", scrubbed_text=None, stage="uploaded"),
            ProcessedFile(id="c", filename="note_2024-03-01.txt", scrubbed_text=""),
        ]
        timeline = build_timeline(files)
        assert [d.id for d in timeline.documents] == ["a"]

    def test_undated_document_falls_back_to_now(self):
        files = [
            ProcessedFile(id="undated", filename="note.txt", scrubbed_text="Undated progress remarks"),
            ProcessedFile(id="old", filename="note_2020-01-01.txt", scrubbed_text="Initial consult findings"),
        ]
        timeline = build_timeline(files)
        assert [d.id for d in timeline.documents] == ["old", "undated"]
        assert timeline.documents[1].date.year >= 2024

    def test_summary(self):
        files = [
            ProcessedFile(id="a", filename="labs_2024-01-01.txt", scrubbed_text="CBC panel normal"),
            ProcessedFile(id="b", filename="refill_2024-03-01.txt", scrubbed_text="Pharmacy refill approved"),
        ]
        summary = build_timeline(files).summary
        assert summary.total_documents == 2
        assert summary.date_range.earliest == datetime(2024, 1, 1)
        assert summary.date_range.latest == datetime(2024, 3, 1)
        assert summary.document_types == {"lab_report": 1, "medication": 1}

    def test_empty_input(self):
        timeline = build_timeline([])
        assert timeline.documents == []
        assert timeline.summary.total_documents == 0
        assert timeline.summary.date_range is None
