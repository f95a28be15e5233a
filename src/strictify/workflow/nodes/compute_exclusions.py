"""ComputeExclusions node - files owned by ignored branches."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from strictify.core.log import logger
from strictify.git.changes import compute_exclusions
from strictify.workflow.nodes.compute_change_set import ComputeChangeSet
from strictify.workflow.state import CheckDeps, CheckState


@dataclass
class ComputeExclusions(BaseNode[CheckState, CheckDeps]):
    async def run(
        self, ctx: GraphRunContext[CheckState, CheckDeps]
    ) -> ComputeChangeSet:
        request = ctx.deps.request
        ctx.state.exclusions = await compute_exclusions(
            ctx.deps.vcs, request.ignore_branches, request.target_branch
        )
        if request.ignore_branches:
            logger.info(
                "Computed exclusions",
                branches=request.ignore_branches,
                count=len(ctx.state.exclusions),
            )
        return ComputeChangeSet()
