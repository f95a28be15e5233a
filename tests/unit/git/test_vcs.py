"""Tests for git output parsing and the GitVcs adapter."""

import asyncio
from types import SimpleNamespace

import pytest
from pydantic import ValidationError

from strictify.git import vcs as vcs_module
from strictify.git.vcs import (
    GitVcs,
    Revision,
    VcsQueryError,
    parse_name_list,
    parse_porcelain_status,
)


def _result(exited=0, stdout="", stderr=""):
    return SimpleNamespace(exited=exited, stdout=stdout, stderr=stderr)


@pytest.fixture
def fake_execute(monkeypatch):
    """Replace execute_async with a recorder returning queued results."""
    calls = []
    results = []

    async def execute(command, **kwargs):
        calls.append((command, kwargs))
        return results.pop(0)

    monkeypatch.setattr(vcs_module, "execute_async", execute)
    return SimpleNamespace(calls=calls, results=results)


class TestRevision:
    def test_strips_whitespace(self):
        assert Revision(sha=" abc123\n").sha == "abc123"

    def test_rejects_blank(self):
        with pytest.raises(ValidationError):
            Revision(sha="   ")

    def test_str_is_sha(self):
        assert str(Revision(sha="abc123")) == "abc123"


class TestParsePorcelainStatus:
    def test_kinds(self):
        output = "A  new.ts\0 M edited.ts\0MM both.ts\0?? loose.ts\0"

        status = parse_porcelain_status(output)

        assert status.created == ["new.ts"]
        assert status.modified == ["edited.ts", "both.ts"]
        assert status.untracked == ["loose.ts"]

    def test_added_then_modified_is_both(self):
        status = parse_porcelain_status("AM fresh.ts\0")

        assert status.created == ["fresh.ts"]
        assert status.modified == ["fresh.ts"]

    def test_rename_source_entry_skipped(self):
        output = "R  new_name.ts\0old_name.ts\0 M other.ts\0"

        status = parse_porcelain_status(output)

        assert status.created == ["new_name.ts"]
        assert status.modified == ["other.ts"]
        assert "old_name.ts" not in status.created + status.modified

    def test_renamed_then_edited_is_created_and_modified(self):
        status = parse_porcelain_status("RM new.ts\0old.ts\0")

        assert status.created == ["new.ts"]
        assert status.modified == ["new.ts"]
        assert status.untracked == []

    def test_copy_target_is_created(self):
        status = parse_porcelain_status("C  copy.ts\0orig.ts\0")

        assert status.created == ["copy.ts"]
        assert status.modified == []

    def test_deleted_ignored(self):
        status = parse_porcelain_status(" D gone.ts\0D  also.ts\0")

        assert status.created == []
        assert status.modified == []
        assert status.untracked == []

    def test_paths_with_spaces(self):
        status = parse_porcelain_status("?? my file.ts\0")

        assert status.untracked == ["my file.ts"]

    def test_empty(self):
        status = parse_porcelain_status("")

        assert status.created == status.modified == status.untracked == []


class TestParseNameList:
    def test_nul_separated(self):
        assert parse_name_list("a.ts\0b.tsx\0") == ["a.ts", "b.tsx"]

    def test_newline_separated(self):
        assert parse_name_list("a.ts\nb.tsx\n") == ["a.ts", "b.tsx"]

    def test_blank(self):
        assert parse_name_list("\n") == []


class TestGitVcs:
    def test_fork_point_found(self, fake_execute, tmp_path):
        fake_execute.results.append(_result(stdout="abc123\n"))
        git = GitVcs(tmp_path)

        revision = asyncio.run(git.fork_point("HEAD", "master"))

        assert revision == Revision(sha="abc123")
        command, kwargs = fake_execute.calls[0]
        assert command == "git merge-base --fork-point master HEAD"
        assert kwargs["cwd"] == tmp_path
        assert kwargs["check"] is False

    def test_fork_point_none_on_exit_one(self, fake_execute, tmp_path):
        fake_execute.results.append(_result(exited=1))

        revision = asyncio.run(GitVcs(tmp_path).fork_point("HEAD", "master"))

        assert revision is None

    def test_fork_point_raises_on_git_error(self, fake_execute, tmp_path):
        fake_execute.results.append(
            _result(exited=128, stderr="fatal: Not a valid object name")
        )

        with pytest.raises(VcsQueryError, match="128"):
            asyncio.run(GitVcs(tmp_path).fork_point("HEAD", "nope"))

    def test_refs_are_shell_quoted(self, fake_execute, tmp_path):
        fake_execute.results.append(_result(exited=1))

        asyncio.run(GitVcs(tmp_path).fork_point("feature/x; rm -rf /", "m"))

        command, _ = fake_execute.calls[0]
        assert "'feature/x; rm -rf /'" in command

    def test_working_tree_status(self, fake_execute, tmp_path):
        fake_execute.results.append(_result(stdout="?? a.ts\0 M b.ts\0"))

        status = asyncio.run(GitVcs(tmp_path).working_tree_status())

        assert status.untracked == ["a.ts"]
        assert status.modified == ["b.ts"]

    def test_working_tree_status_raises(self, fake_execute, tmp_path):
        fake_execute.results.append(_result(exited=128, stderr="fatal"))

        with pytest.raises(VcsQueryError):
            asyncio.run(GitVcs(tmp_path).working_tree_status())

    def test_diff_summary(self, fake_execute, tmp_path):
        fake_execute.results.append(_result(stdout="x.ts\0y.tsx\0"))

        summary = asyncio.run(
            GitVcs(tmp_path).diff_summary(Revision(sha="abc"), "HEAD")
        )

        assert summary.changed_files == ["x.ts", "y.tsx"]
        command, _ = fake_execute.calls[0]
        assert command == (
            "git diff --name-only -z --diff-filter=d abc HEAD"
        )

    def test_configured_commands_override(self, fake_execute, tmp_path):
        fake_execute.results.append(_result(stdout=""))
        git = GitVcs(
            tmp_path,
            commands={"status": "git -c core.quotepath=off status -z"},
        )

        asyncio.run(git.working_tree_status())

        assert fake_execute.calls[0][0] == "git -c core.quotepath=off status -z"

    def test_timeout_passed_through(self, fake_execute, tmp_path):
        fake_execute.results.append(_result())

        asyncio.run(GitVcs(tmp_path, timeout=7).working_tree_status())

        assert fake_execute.calls[0][1]["timeout"] == 7
