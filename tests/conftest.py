"""Pytest configuration helpers."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import pytest


def _ensure_repo_on_path() -> None:
    """Allow tests to import from repo modules without setting PYTHONPATH."""
    repo_root = Path(__file__).resolve().parents[1]
    path_str = str(repo_root)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)


_ensure_repo_on_path()

from voxline.audio.process import ProcessResult, ToolRunner  # noqa: E402
from voxline.errors import ToolExecutionError  # noqa: E402


class FakeRunner(ToolRunner):
    """ToolRunner double; ``handler(args)`` returns a ProcessResult or raises."""

    def __init__(self, handler: Optional[Callable[[List[str]], ProcessResult]] = None) -> None:
        self.handler = handler or (lambda args: ProcessResult(0, "", ""))
        self.calls: List[List[str]] = []

    async def run(self, args: Sequence[str]) -> ProcessResult:
        args = [str(arg) for arg in args]
        self.calls.append(args)
        return self.handler(args)


def launch_failure(args: List[str]) -> ProcessResult:
    raise ToolExecutionError(args[0], "failed to launch (not found)", args=args)


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()
