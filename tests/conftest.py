"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Sequence
from fnmatch import fnmatchcase
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from build_changelog.models import BuildTag, GitTagRef
from build_changelog.vcs import VcsExecutor


class FakeExecutor(VcsExecutor):
    """In-memory executor.

    Args:
        tags: Tags newest first, as git would list them.
        subjects: Commit subjects per (from_sha, to_sha), newest first.
    """

    def __init__(
        self,
        tags: Sequence[GitTagRef] = (),
        subjects: dict[tuple[str | None, str], list[str]] | None = None,
    ) -> None:
        self.tags = list(tags)
        self.subjects = subjects or {}
        self.tag_queries: list[tuple[list[str], int | None]] = []
        self.subject_queries: list[tuple[str | None, str]] = []

    def find_build_tags(
        self, globs: Sequence[str], limit: int | None
    ) -> list[GitTagRef] | None:
        self.tag_queries.append((list(globs), limit))
        found = [t for t in self.tags if any(fnmatchcase(t.name, g) for g in globs)]
        if limit is not None:
            found = found[:limit]
        return found or None

    def commit_subjects(self, from_sha: str | None, to_sha: str) -> list[str]:
        self.subject_queries.append((from_sha, to_sha))
        return list(self.subjects.get((from_sha, to_sha), []))


@pytest.fixture
def app_tags() -> list[GitTagRef]:
    """Tags of the app variant, newest first, plus one of beta in between."""
    return [
        GitTagRef(name="app/13", commit_sha="c13", message="Release 13"),
        GitTagRef(name="beta/4", commit_sha="c12b"),
        GitTagRef(name="app/12", commit_sha="c12"),
        GitTagRef(name="app/11", commit_sha="c11"),
    ]


@pytest.fixture
def executor(app_tags: list[GitTagRef]) -> FakeExecutor:
    return FakeExecutor(
        app_tags,
        {
            ("c12", "c13"): [
                "[CL] PROJ-7 Fix crash on login",
                "Merge pull request #40 from feature/login",
                "Bump dependencies",
                'Revert "[CL] Add dark mode"',
                "[CL] PROJ-8 Add dark mode",
                "[CL] PROJ-7 Fix crash on login",
            ],
        },
    )


@pytest.fixture
def build_tag() -> BuildTag:
    return BuildTag(
        name="app/13",
        commit_sha="c13",
        message="Release 13",
        build_variant="app",
        build_number=13,
    )


@pytest.fixture
def mock_logger() -> MagicMock:
    """A stand-in for the loguru logger that records calls."""
    return MagicMock()


@pytest.fixture
def tmp_pyproject(tmp_path: Path) -> Path:
    """Create a temporary pyproject.toml with changelog settings."""
    content = """\
[project]
name = "mobile-app"
version = "1.0.0"

[tool.build-changelog]
message-key = "[CL]"
strip-message-key = true
reference-pattern = "PROJ-\\\\d+"
issue-url-prefix = "https://issues.example.com/browse/"
variants = ["app", "beta"]

[tool.build-changelog.overrides.beta]
max-entries = 5
escape-rules = "slack"
"""
    pyproject = tmp_path / "pyproject.toml"
    pyproject.write_text(content)
    return pyproject


@pytest.fixture
def make_executor():
    """Factory for FakeExecutor instances."""
    return FakeExecutor
