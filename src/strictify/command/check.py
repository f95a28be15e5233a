"""Check command - strict compile, reported for changed files only."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from strictify.compiler.correlate import MatchMode
from strictify.compiler.tsc import CompilerInvocationError, TscCompiler
from strictify.core.log import logger
from strictify.core.result import (
    CheckFile,
    FoundChangedFiles,
    FoundSinceRevision,
    StrictifyEvent,
)
from strictify.git.vcs import GitVcs
from strictify.workflow.graph import strictify
from strictify.workflow.state import StrictifyRequest

if TYPE_CHECKING:
    from strictify.core.config import Config, State

EXIT_OK = 0
EXIT_DIAGNOSTICS = 1
EXIT_COMPILER_FAILED = 2


def print_event(event: StrictifyEvent) -> None:
    """Render one lifecycle event on stdout."""
    if isinstance(event, FoundSinceRevision):
        if event.revision is None:
            print("Could not find the fork point; "
                  "checking uncommitted changes only")
        else:
            print(f"Checking files changed since {event.revision.sha}")
    elif isinstance(event, FoundChangedFiles):
        print(f"Found {len(event.files)} changed file(s)")
    elif isinstance(event, CheckFile):
        for line in event.diagnostics:
            print(line)
        mark = "✗" if event.has_diagnostics else "✓"
        print(f"{mark} {event.file}")


class CheckCommand(BaseModel):
    """Compile the project with strict settings and fail if any file
    changed on this branch has diagnostics.

    Files changed on --ignore-branch branches are left out, as are
    files nobody touched.
    """

    target_branch: str | None = Field(
        default=None,
        alias="target-branch",
        description="Branch to compare against (default: config.git)",
    )
    ignore_branch: list[str] | None = Field(
        default=None,
        alias="ignore-branch",
        description="Branch whose changes are ignored (repeatable)",
    )
    match_mode: MatchMode | None = Field(
        default=None,
        alias="match-mode",
        description="substring or exact (default: config.compiler)",
    )

    def build_request(self, config: Config) -> StrictifyRequest:
        """Merge CLI overrides into the configured request."""
        return StrictifyRequest(
            options=config.compiler.options,
            target_branch=self.target_branch or config.git.target_branch,
            ignore_branches=(
                self.ignore_branch
                if self.ignore_branch is not None
                else config.git.ignore_branches
            ),
            match_mode=self.match_mode or config.compiler.match_mode,
        )

    async def run_workflow(self, state: State) -> int:
        """Run the check.

        Returns:
            Exit code: 0 clean, 1 diagnostics in changed files,
                2 compiler could not run
        """
        config = state.config
        request = self.build_request(config)

        vcs = GitVcs(
            config.git.workdir,
            commands=config.commands.get("git"),
            timeout=config.git.timeout,
        )
        compiler = TscCompiler(
            config.git.workdir,
            command=config.compiler.command,
            diagnostic_exit_codes=tuple(config.compiler.diagnostic_exit_codes),
            timeout=config.compiler.timeout,
        )

        try:
            report = await strictify(
                request, vcs, compiler, listener=print_event
            )
        except CompilerInvocationError as e:
            logger.error("Compiler could not run", error=str(e))
            return EXIT_COMPILER_FAILED

        outcome = report.outcome
        if outcome.success:
            logger.info("No diagnostics in changed files")
            return EXIT_OK

        logger.error(
            "Diagnostics found in changed files",
            errors=outcome.error_count,
        )
        return EXIT_DIAGNOSTICS
