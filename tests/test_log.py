"""Tests for build_changelog.log."""

from __future__ import annotations

import sys

import pytest
from loguru import logger

from build_changelog.log import configure


@pytest.fixture(autouse=True)
def restore_sinks():
    yield
    logger.remove()
    logger.add(sys.stderr)


class TestConfigure:
    """Tests for configure()."""

    def test_level_argument(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure("debug")

        logger.debug("resolved app/13")

        assert "resolved app/13" in capsys.readouterr().err

    def test_default_hides_info(
        self, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("BUILD_CHANGELOG_LOG_LEVEL", raising=False)
        configure()

        logger.info("quiet")
        logger.warning("loud")

        err = capsys.readouterr().err
        assert "quiet" not in err
        assert "loud" in err

    def test_environment(
        self, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("BUILD_CHANGELOG_LOG_LEVEL", "info")
        configure()

        logger.info("visible")

        assert "visible" in capsys.readouterr().err

    def test_stdout_untouched(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure("debug")

        logger.error("problem")

        assert capsys.readouterr().out == ""
