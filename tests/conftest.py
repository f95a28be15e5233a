"""Pytest configuration and fixtures for strictify tests."""

import sys
import tempfile
from pathlib import Path

import pytest

from strictify.core.log import ConsoleSink, setup_logger
from strictify.git.vcs import (
    DiffSummary,
    Revision,
    VcsQueryError,
    WorkingTreeStatus,
)


@pytest.fixture(autouse=True, scope="session")
def configure_logging():
    """Console-only logging at debug level for the whole session."""
    test_log_root = Path(tempfile.gettempdir()) / "strictify-tests"
    setup_logger(
        log_root=test_log_root,
        run_name="test",
        console=ConsoleSink(level="debug"),
    )


@pytest.fixture(scope="session")
def test_config():
    """Load Config from package defaults without pytest's argv.

    Returns:
        Config object with all settings loaded from defaults
    """
    from strictify.core.config import State

    old_argv = sys.argv
    sys.argv = ['strictify']

    try:
        return State().config
    finally:
        sys.argv = old_argv


class FakeVcs:
    """In-memory VcsPort.

    fork_points maps (ref, target) to a sha, diffs maps (sha, head) to
    changed files. Names in `failing` raise VcsQueryError.
    """

    def __init__(
        self,
        fork_points=None,
        status=None,
        diffs=None,
        failing=(),
    ):
        self.fork_points = fork_points or {}
        self.status = status or WorkingTreeStatus()
        self.diffs = diffs or {}
        self.failing = set(failing)
        self.calls = []

    def _maybe_fail(self, name):
        if name in self.failing:
            raise VcsQueryError(f"{name} failed")

    async def fork_point(self, ref, target_ref):
        self.calls.append(("fork_point", ref, target_ref))
        self._maybe_fail("fork_point")
        sha = self.fork_points.get((ref, target_ref))
        return Revision(sha=sha) if sha else None

    async def working_tree_status(self):
        self.calls.append(("working_tree_status",))
        self._maybe_fail("working_tree_status")
        return self.status

    async def diff_summary(self, base, head):
        self.calls.append(("diff_summary", base.sha, head))
        self._maybe_fail("diff_summary")
        return DiffSummary(
            changed_files=self.diffs.get((base.sha, head), [])
        )


class FakeCompiler:
    """In-memory CompilerPort returning canned output or raising."""

    def __init__(self, output="", error=None):
        self.output = output
        self.error = error
        self.calls = []

    async def run(self, args):
        self.calls.append(list(args))
        if self.error is not None:
            raise self.error
        return self.output


@pytest.fixture
def make_vcs():
    return FakeVcs


@pytest.fixture
def make_compiler():
    return FakeCompiler
