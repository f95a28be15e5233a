"""ComputeChangeSet node - collect changed TypeScript files."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, End, GraphRunContext

from strictify.core.log import logger
from strictify.core.result import FoundChangedFiles, Outcome
from strictify.git.changes import collect_change_set
from strictify.workflow.nodes.apply_exclusion import ApplyExclusion
from strictify.workflow.state import CheckDeps, CheckState, emit


@dataclass
class ComputeChangeSet(BaseNode[CheckState, CheckDeps, Outcome]):
    """Collect changes since the fork point; stop early if none."""

    async def run(
        self, ctx: GraphRunContext[CheckState, CheckDeps]
    ) -> ApplyExclusion | End[Outcome]:
        """Route to ApplyExclusion, or end successfully when the
        change set is empty."""
        changed = await collect_change_set(
            ctx.deps.vcs, ctx.state.since_revision
        )
        ctx.state.changed_files = changed
        logger.info("Found changed files", count=len(changed))
        emit(ctx, FoundChangedFiles(files=list(changed)))

        if not changed:
            ctx.state.status = "complete"
            return End(Outcome(error_count=0))
        return ApplyExclusion()
