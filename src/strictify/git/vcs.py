"""Version control queries: the port and its git implementation."""

from __future__ import annotations

import shlex
from pathlib import Path
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, field_validator

from strictify.core.log import logger
from strictify.core.runner import execute_async

DEFAULT_COMMANDS = {
    "fork_point": "git merge-base --fork-point {target} {ref}",
    "status": "git status --porcelain -z --untracked-files=all",
    "diff_names": "git diff --name-only -z --diff-filter=d {base} {head}",
}

# git merge-base exits 1 when the refs share no fork point
_NO_FORK_POINT_EXIT = 1


class VcsQueryError(RuntimeError):
    """A version control query could not be answered."""


class Revision(BaseModel):
    """A commit identifier.

    An unknown fork point is represented by None wherever a
    Revision is expected, never by a sentinel string.
    """

    model_config = ConfigDict(frozen=True)

    sha: str

    @field_validator("sha")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("revision must not be empty")
        return value

    def __str__(self) -> str:
        return self.sha


class WorkingTreeStatus(BaseModel):
    """Files touched in the working directory, per status kind."""

    created: list[str] = Field(default_factory=list)
    modified: list[str] = Field(default_factory=list)
    untracked: list[str] = Field(default_factory=list)


class DiffSummary(BaseModel):
    """Files differing between two revisions."""

    changed_files: list[str] = Field(default_factory=list)


@runtime_checkable
class VcsPort(Protocol):
    """Queries the change-set logic needs from version control.

    Every method may raise; callers decide how to degrade.
    """

    async def fork_point(
        self, ref: str, target_ref: str
    ) -> Revision | None:
        ...

    async def working_tree_status(self) -> WorkingTreeStatus:
        ...

    async def diff_summary(
        self, base: Revision, head: str
    ) -> DiffSummary:
        ...


def parse_porcelain_status(output: str) -> WorkingTreeStatus:
    """Parse `git status --porcelain -z` output.

    Entries are NUL separated, each `XY PATH`. A rename or copy names
    its new path, which counts as created (and as modified too when
    the worktree column is M); the entry after it holds the original
    path, which is skipped. Deleted paths are not reported.

    >>> parse_porcelain_status("A  a.ts\\0 M b.ts\\0?? c.ts\\0")
    WorkingTreeStatus(created=['a.ts'], modified=['b.ts'], untracked=['c.ts'])
    """
    status = WorkingTreeStatus()
    entries = iter(output.split("\0"))
    for entry in entries:
        if len(entry) < 4:
            continue
        xy, path = entry[:2], entry[3:]

        if "R" in xy or "C" in xy:
            next(entries, None)
            status.created.append(path)
            if xy[1] == "M":
                status.modified.append(path)
            continue
        if xy == "??":
            status.untracked.append(path)
            continue
        if xy[0] == "A":
            status.created.append(path)
        if "M" in xy:
            status.modified.append(path)

    return status


def parse_name_list(output: str) -> list[str]:
    """Split NUL or newline separated path output, dropping blanks."""
    separator = "\0" if "\0" in output else "\n"
    return [name for name in output.split(separator) if name.strip()]


class GitVcs:
    """VcsPort backed by the git command line.

    Commands come from the `commands.git` config section, so that
    e.g. a different git binary or extra flags can be configured.
    """

    def __init__(
        self,
        workdir: Path,
        commands: dict[str, str] | None = None,
        timeout: int | None = None,
    ):
        self.workdir = Path(workdir)
        self.commands = {**DEFAULT_COMMANDS, **(commands or {})}
        self.timeout = timeout

    def _command(self, name: str, **values: str) -> str:
        quoted = {key: shlex.quote(value) for key, value in values.items()}
        return self.commands[name].format(**quoted)

    async def _run(self, name: str, **values: str):
        cmd = self._command(name, **values)
        return cmd, await execute_async(
            cmd, cwd=self.workdir, timeout=self.timeout, check=False
        )

    async def fork_point(
        self, ref: str, target_ref: str
    ) -> Revision | None:
        """Return the commit where `ref` forked from `target_ref`.

        Returns None when git reports there is no such point.

        Raises:
            VcsQueryError: For any other git failure
        """
        cmd, result = await self._run(
            "fork_point", ref=ref, target=target_ref
        )
        output = result.stdout.strip()

        if result.exited == _NO_FORK_POINT_EXIT and not output:
            return None
        if result.exited != 0:
            raise VcsQueryError(
                f"{cmd} exited with {result.exited}: "
                f"{result.stderr.strip()}"
            )
        if not output:
            return None
        return Revision(sha=output.splitlines()[0])

    async def working_tree_status(self) -> WorkingTreeStatus:
        cmd, result = await self._run("status")
        if result.exited != 0:
            raise VcsQueryError(
                f"{cmd} exited with {result.exited}: "
                f"{result.stderr.strip()}"
            )
        status = parse_porcelain_status(result.stdout)
        logger.debug(
            "Working tree status",
            created=len(status.created),
            modified=len(status.modified),
            untracked=len(status.untracked),
        )
        return status

    async def diff_summary(
        self, base: Revision, head: str
    ) -> DiffSummary:
        cmd, result = await self._run(
            "diff_names", base=base.sha, head=head
        )
        if result.exited != 0:
            raise VcsQueryError(
                f"{cmd} exited with {result.exited}: "
                f"{result.stderr.strip()}"
            )
        return DiffSummary(changed_files=parse_name_list(result.stdout))
