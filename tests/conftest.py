from __future__ import annotations

import sys
from pathlib import Path

import pytest


def _ensure_paths() -> None:
    """Make ``midicue`` (src layout) and the test helpers importable without an install."""

    root = Path(__file__).resolve().parent.parent
    for p in (root / "src", root / "tests"):
        if str(p) not in sys.path:
            sys.path.insert(0, str(p))


_ensure_paths()

from helpers import FakeClock, ManualExecutor, RecordingPlayback  # noqa: E402


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def executor() -> ManualExecutor:
    return ManualExecutor()


@pytest.fixture
def playback() -> RecordingPlayback:
    return RecordingPlayback()


@pytest.fixture(autouse=True)
def _reset_midicue_logging():
    yield
    from midicue.logging_config import reset_logging

    reset_logging()
