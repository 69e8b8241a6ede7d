"""
Unit tests for attendee duplicate detection.

Tests cover:
- Email matches (case and whitespace insensitive)
- Name fallback when the candidate has no email
- Different emails never collide, even with the same name
- Dict and object records
"""

from types import SimpleNamespace

import pytest

from backend.src.services.duplicate_reconciler import (
    find_duplicate,
    is_duplicate,
    matches,
    normalize,
)


EXISTING = [{"name": "Ann Lee", "email": "ann@x.io"}]


class TestNormalize:
    """Tests for normalize."""

    def test_trims_and_lowercases(self):
        assert normalize("  Ann@X.io ") == "ann@x.io"

    def test_none_is_empty(self):
        assert normalize(None) == ""


class TestIsDuplicate:
    """Tests for the matching rules."""

    def test_same_email_is_duplicate(self):
        assert is_duplicate({"name": "Someone Else", "email": "ann@x.io"}, EXISTING)

    def test_email_match_ignores_case_and_whitespace(self):
        assert is_duplicate({"name": "Ann", "email": " ANN@X.IO "}, EXISTING)

    def test_name_match_without_email(self):
        assert is_duplicate({"name": "ann lee", "email": ""}, EXISTING)

    def test_name_match_with_none_email(self):
        assert is_duplicate({"name": " Ann Lee ", "email": None}, EXISTING)

    def test_different_email_same_name_is_not_duplicate(self):
        assert not is_duplicate({"name": "Ann Lee", "email": "ann2@x.io"}, EXISTING)

    def test_different_name_without_email_is_not_duplicate(self):
        assert not is_duplicate({"name": "Bob Roe", "email": ""}, EXISTING)

    def test_blank_candidate_never_matches(self):
        assert not is_duplicate({"name": "", "email": ""}, [{"name": "", "email": ""}])

    def test_empty_existing(self):
        assert not is_duplicate({"name": "Ann Lee", "email": "ann@x.io"}, [])


class TestFindDuplicate:
    """Tests for find_duplicate and object records."""

    def test_returns_first_match(self):
        existing = [
            {"name": "Bob Roe", "email": "bob@x.io"},
            {"name": "Ann Lee", "email": ""},
            {"name": "Ann Lee", "email": "ann@x.io"},
        ]

        found = find_duplicate({"name": "ANN LEE", "email": ""}, existing)

        assert found is existing[1]

    def test_returns_none_without_match(self):
        assert find_duplicate({"name": "Cy", "email": "cy@x.io"}, EXISTING) is None

    @pytest.mark.parametrize("candidate,expected", [
        (SimpleNamespace(name="Ann Lee", email=None), True),
        (SimpleNamespace(name="Ann Lee", email="other@x.io"), False),
    ])
    def test_object_records(self, candidate, expected):
        record = SimpleNamespace(name="Ann Lee", email="ann@x.io")
        assert matches(candidate, record) is expected
