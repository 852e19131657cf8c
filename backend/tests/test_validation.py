"""Tests for scrubber.validation: secondary pass, verification and confidence."""

from __future__ import annotations

import pytest

from scrubber.session import RedactionSession
from scrubber.validation import confidence_for, is_whitelisted, secondary_pass, verify


# -----------------------------------------------------------------------
# secondary_pass
# -----------------------------------------------------------------------


class TestSecondaryPass:

    def test_redacts_capitalized_name(self):
        session = RedactionSession()
        text, added = secondary_pass("Seen by John Carter today", session)
        assert text == "Seen by [PER_1] today"
        assert added == 1
        assert session.replacements == {"John Carter": "[PER_1]"}

    def test_whitelisted_sequence_is_kept(self):
        session = RedactionSession()
        text, added = secondary_pass("Blood Pressure normal", session)
        assert text == "Blood Pressure normal"
        assert added == 0

    def test_placeholders_are_not_rewrapped(self):
        session = RedactionSession()
        text, added = secondary_pass("Seen by [PER_1] on [DATE_2]", session)
        assert text == "Seen by [PER_1] on [DATE_2]"
        assert added == 0

    def test_numeric_id(self):
        session = RedactionSession()
        text, _ = secondary_pass("Account AB1234567 closed", session)
        assert text == "Account [ID_1] closed"

    def test_reuses_session_placeholders(self):
        session = RedactionSession()
        session.placeholder_for("John Carter", "PER")
        text, added = secondary_pass("John Carter called", session)
        assert text == "[PER_1] called"
        assert added == 0


# -----------------------------------------------------------------------
# verify / confidence
# -----------------------------------------------------------------------


class TestVerify:

    def test_clean_text(self):
        report = verify("Seen by [PER_1] for [DATE_1] follow up.")
        assert report.found_suspicious_pii is False
        assert report.suspicious_matches == []
        assert report.confidence_score == 100.0

    def test_reports_phone_survivor(self):
        report = verify("Call 555 123 4567 now")
        assert report.found_suspicious_pii is True
        assert [m.kind for m in report.suspicious_matches] == ["Phone-like pattern"]
        assert report.confidence_score == 98.0

    def test_does_not_modify_text(self):
        text = "Seen by John Carter today"
        verify(text)
        assert text == "Seen by John Carter today"


class TestConfidence:

    @pytest.mark.parametrize(
        "survivors, expected",
        [(0, 100.0), (1, 98.0), (5, 94.0), (6, 93.0), (10, 89.0), (11, 88.0),
         (20, 79.0), (21, 78.0), (100, 50.0)],
    )
    def test_penalty_schedule(self, survivors: int, expected: float):
        assert confidence_for(survivors) == expected


class TestWhitelist:

    def test_known_terms(self):
        assert is_whitelisted("Discharge")
        assert is_whitelisted(" Monday ")

    def test_unknown_term(self):
        assert not is_whitelisted("Carter")
