"""Tests for build_changelog.commits."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from build_changelog.commits import (
    CommitExtractor,
    deduplicate,
    filter_by_key,
    strip_message_key,
)
from build_changelog.errors import VcsQueryError
from build_changelog.models import CommitRange


class TestExtractSubjects:
    """Tests for CommitExtractor.extract_subjects()."""

    def test_drops_merges_and_reverts(self, executor) -> None:
        extractor = CommitExtractor(executor, logger=MagicMock())

        subjects = extractor.extract_subjects(CommitRange(from_sha="c12", to_sha="c13"))

        assert subjects == [
            "[CL] PROJ-7 Fix crash on login",
            "Bump dependencies",
            "[CL] PROJ-8 Add dark mode",
            "[CL] PROJ-7 Fix crash on login",
        ]

    def test_empty_range_does_not_query(self, executor) -> None:
        """from == to means nothing changed; the executor is not asked."""
        extractor = CommitExtractor(executor, logger=MagicMock())

        assert extractor.extract_subjects(CommitRange(from_sha="c13", to_sha="c13")) == []
        assert executor.subject_queries == []

    def test_full_history(self, make_executor) -> None:
        executor = make_executor(subjects={(None, "HEAD"): ["Initial commit"]})
        extractor = CommitExtractor(executor, logger=MagicMock())

        assert extractor.extract_subjects(CommitRange.full_history()) == ["Initial commit"]

    def test_custom_revert_marker(self, make_executor) -> None:
        executor = make_executor(
            subjects={("a", "b"): ["Undo: add dark mode", 'Revert "Add dark mode"']}
        )
        extractor = CommitExtractor(executor, revert_marker="Undo:", logger=MagicMock())

        assert extractor.extract_subjects(CommitRange(from_sha="a", to_sha="b")) == [
            'Revert "Add dark mode"'
        ]

    def test_query_errors_propagate(self) -> None:
        executor = MagicMock()
        executor.commit_subjects.side_effect = VcsQueryError("bad revision")
        extractor = CommitExtractor(executor, logger=MagicMock())

        with pytest.raises(VcsQueryError):
            extractor.extract_subjects(CommitRange(from_sha="x", to_sha="y"))
        executor.commit_subjects.assert_called_once_with("x", "y")


class TestFilterByKey:
    """Tests for filter_by_key()."""

    SUBJECTS = ["[CL] Fix crash", "Bump deps", "Refactor [CL] login", "[cl] lower"]

    def test_keeps_subjects_with_key(self) -> None:
        """Matching is a case-sensitive substring test."""
        assert filter_by_key(self.SUBJECTS, "[CL]") == ["[CL] Fix crash", "Refactor [CL] login"]

    @pytest.mark.parametrize("key", [None, ""])
    def test_no_key_keeps_everything(self, key: str | None) -> None:
        assert filter_by_key(self.SUBJECTS, key) == self.SUBJECTS

    def test_idempotent(self) -> None:
        once = filter_by_key(self.SUBJECTS, "[CL]")

        assert filter_by_key(once, "[CL]") == once


class TestDeduplicate:
    """Tests for deduplicate()."""

    def test_first_occurrence_wins(self) -> None:
        assert deduplicate(["a", "b", "a", "c", "b"]) == ["a", "b", "c"]

    def test_empty(self) -> None:
        assert deduplicate([]) == []


class TestStripMessageKey:
    """Tests for strip_message_key()."""

    @pytest.mark.parametrize(
        ("subject", "expected"),
        [
            ("[CL] Fix crash", "Fix crash"),
            ("[CL]: Fix crash", "Fix crash"),
            ("Fix crash [CL]", "Fix crash"),
            ("Fix [CL] crash", "Fix crash"),
        ],
    )
    def test_removes_key(self, subject: str, expected: str) -> None:
        assert strip_message_key(subject, "[CL]") == expected

    def test_no_key(self) -> None:
        assert strip_message_key("[CL] Fix", None) == "[CL] Fix"
