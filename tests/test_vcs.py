"""Tests for build_changelog.vcs."""

from __future__ import annotations

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from build_changelog.errors import VcsQueryError
from build_changelog.models import GitTagRef
from build_changelog.vcs import GitExecutor


def _record(
    name: str, object_type: str, object_sha: str, peeled: str, contents: str
) -> str:
    return "\x00".join([name, object_type, object_sha, peeled, contents]) + "\x1e"


class TestFindBuildTags:
    """Tests for GitExecutor.find_build_tags()."""

    @patch("build_changelog.vcs.git")
    def test_sorts_by_creation_date(self, mock_git: MagicMock) -> None:
        """Tags are listed newest first by creation date, never by name."""
        mock_git.return_value = ""

        GitExecutor().find_build_tags(["app/*", "beta/*"], 2)

        args = mock_git.call_args.args
        assert args[:3] == ("tag", "--list", "--sort=-creatordate")
        assert args[-2:] == ("app/*", "beta/*")

    @patch("build_changelog.vcs.git")
    def test_parses_annotated_and_lightweight_tags(self, mock_git: MagicMock) -> None:
        """Annotated tags use the peeled commit and their message."""
        mock_git.return_value = (
            _record("app/10", "tag", "t10", "c10", "Release 10\n")
            + "\n"
            + _record("app/9", "commit", "c9", "", "Commit message of c9\n")
        )

        tags = GitExecutor().find_build_tags(["app/*"], None)

        assert tags == [
            GitTagRef(name="app/10", commit_sha="c10", message="Release 10"),
            GitTagRef(name="app/9", commit_sha="c9", message=""),
        ]

    @pytest.mark.parametrize(
        ("object_type", "peeled"), [("tag", "c1"), ("commit", "")]
    )
    @patch("build_changelog.shell.subprocess.run")
    def test_oldest_tag_with_empty_contents(
        self, mock_run: MagicMock, object_type: str, peeled: str
    ) -> None:
        """Empty trailing fields of the last record survive output stripping."""
        object_sha = "t1" if object_type == "tag" else "c1"
        mock_run.return_value = subprocess.CompletedProcess(
            [],
            0,
            stdout=_record("app/2", "tag", "t2", "c2", "Release 2\n")
            + "\n"
            + _record("app/1", object_type, object_sha, peeled, "")
            + "\n",
        )

        tags = GitExecutor().find_build_tags(["app/*"], 2)

        assert tags == [
            GitTagRef(name="app/2", commit_sha="c2", message="Release 2"),
            GitTagRef(name="app/1", commit_sha="c1", message=""),
        ]

    @patch("build_changelog.vcs.git")
    def test_truncated_record_raises(self, mock_git: MagicMock) -> None:
        mock_git.return_value = "app/1\x00tag\x00t1"

        with pytest.raises(VcsQueryError, match="Unexpected git tag record"):
            GitExecutor().find_build_tags(["app/*"], 2)

    @patch("build_changelog.vcs.git")
    def test_applies_limit(self, mock_git: MagicMock) -> None:
        mock_git.return_value = "".join(
            _record(f"app/{n}", "commit", f"c{n}", "", "") for n in (3, 2, 1)
        )

        tags = GitExecutor().find_build_tags(["app/*"], 2)

        assert [t.name for t in tags] == ["app/3", "app/2"]

    @patch("build_changelog.vcs.git")
    def test_returns_none_when_no_tags(self, mock_git: MagicMock) -> None:
        mock_git.return_value = ""

        assert GitExecutor().find_build_tags(["app/*"], 2) is None

    @patch("build_changelog.vcs.git")
    def test_runs_in_repo(self, mock_git: MagicMock, tmp_path) -> None:
        mock_git.return_value = ""

        GitExecutor(repo=tmp_path).find_build_tags(["*"], 1)

        assert mock_git.call_args.kwargs == {"cwd": tmp_path}


class TestCommitSubjects:
    """Tests for GitExecutor.commit_subjects()."""

    @patch("build_changelog.vcs.git")
    def test_range(self, mock_git: MagicMock) -> None:
        mock_git.return_value = "Fix crash\nAdd dark mode"

        subjects = GitExecutor().commit_subjects("c12", "c13")

        assert subjects == ["Fix crash", "Add dark mode"]
        mock_git.assert_called_once_with(
            "log", "--no-merges", "--format=%s", "c12..c13", "--", cwd=None
        )

    @patch("build_changelog.vcs.git")
    def test_from_root(self, mock_git: MagicMock) -> None:
        """Without a start commit the whole history is listed."""
        mock_git.return_value = "Initial commit"

        GitExecutor().commit_subjects(None, "HEAD")

        assert mock_git.call_args.args[3] == "HEAD"

    @patch("build_changelog.vcs.git")
    def test_empty_output(self, mock_git: MagicMock) -> None:
        mock_git.return_value = ""

        assert GitExecutor().commit_subjects("c1", "c2") == []


class TestErrors:
    """Tests for git failures."""

    @patch("build_changelog.vcs.git")
    def test_failed_command_raises(self, mock_git: MagicMock) -> None:
        """Unknown commits surface as VcsQueryError with git's stderr."""
        mock_git.side_effect = subprocess.CalledProcessError(
            128, ["git", "log"], stderr="fatal: bad revision 'nope..c2'\n"
        )

        with pytest.raises(VcsQueryError, match="bad revision"):
            GitExecutor().commit_subjects("nope", "c2")

    @patch("build_changelog.vcs.git")
    def test_missing_git_raises(self, mock_git: MagicMock) -> None:
        mock_git.side_effect = FileNotFoundError("git")

        with pytest.raises(VcsQueryError, match="Cannot run git"):
            GitExecutor().find_build_tags(["*"], 1)
