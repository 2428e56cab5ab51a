"""Tests for mobrel.platform.process module."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from mobrel.core.result import Err, Ok
from mobrel.platform.process import ProcessError, run


class TestProcessError:
    def test_str_shows_program_only(self) -> None:
        error = ProcessError(
            command=("git", "clone", "https://secret@github.com/acme/certs", "out"),
            returncode=128,
            stdout="",
            stderr="fatal",
        )
        assert str(error) == "git failed (exit 128)"
        assert "secret" not in str(error)

    def test_frozen(self) -> None:
        error = ProcessError(("cmd",), 1, "", "")
        with pytest.raises(AttributeError):
            error.returncode = 2  # type: ignore[misc]


class TestRun:
    def test_success_returns_stdout(self, tmp_path: Path) -> None:
        result = run([sys.executable, "-c", "print('hello')"], cwd=tmp_path)

        assert isinstance(result, Ok)
        assert "hello" in result.value

    def test_failure_returns_error(self, tmp_path: Path) -> None:
        result = run(
            [sys.executable, "-c", "import sys; sys.stderr.write('bad'); sys.exit(3)"],
            cwd=tmp_path,
        )

        assert isinstance(result, Err)
        assert result.error.returncode == 3
        assert "bad" in result.error.stderr

    def test_extra_env_is_overlaid(self, tmp_path: Path) -> None:
        result = run(
            [sys.executable, "-c", "import os; print(os.environ['MOBREL_TEST_VALUE'])"],
            cwd=tmp_path,
            extra_env={"MOBREL_TEST_VALUE": "from-env"},
        )

        assert isinstance(result, Ok)
        assert result.value.strip() == "from-env"

    def test_missing_program(self, tmp_path: Path) -> None:
        result = run(["mobrel-definitely-not-a-program"], cwd=tmp_path)

        assert isinstance(result, Err)
        assert result.error.returncode == -1

    def test_timeout(self, tmp_path: Path) -> None:
        result = run(
            [sys.executable, "-c", "import time; time.sleep(5)"],
            cwd=tmp_path,
            timeout=0.2,
        )

        assert isinstance(result, Err)
        assert "timed out" in result.error.stderr
