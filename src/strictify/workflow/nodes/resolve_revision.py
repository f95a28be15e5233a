"""ResolveRevision node - find where HEAD forked from the target."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from strictify.core.log import logger
from strictify.core.result import FoundSinceRevision
from strictify.git.changes import HEAD, find_fork_point
from strictify.workflow.nodes.compute_exclusions import ComputeExclusions
from strictify.workflow.state import CheckDeps, CheckState, emit


@dataclass
class ResolveRevision(BaseNode[CheckState, CheckDeps]):
    """Resolve the fork point and report it, even when unknown."""

    async def run(
        self, ctx: GraphRunContext[CheckState, CheckDeps]
    ) -> ComputeExclusions:
        ctx.state.status = "running"
        target = ctx.deps.request.target_branch

        revision = await find_fork_point(ctx.deps.vcs, HEAD, target)
        ctx.state.since_revision = revision

        if revision is None:
            logger.warn("Fork point unknown", target_branch=target)
        else:
            logger.info(
                "Found fork point", revision=revision.sha,
                target_branch=target,
            )
        emit(ctx, FoundSinceRevision(revision=revision))
        return ComputeExclusions()
