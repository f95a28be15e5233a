"""ApplyExclusion node - drop files that belong to ignored branches."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from strictify.core.log import logger
from strictify.workflow.nodes.run_compiler import RunCompiler
from strictify.workflow.state import CheckDeps, CheckState


@dataclass
class ApplyExclusion(BaseNode[CheckState, CheckDeps]):
    """included = changed - excluded, keeping change-set order."""

    async def run(
        self, ctx: GraphRunContext[CheckState, CheckDeps]
    ) -> RunCompiler:
        excluded = ctx.state.exclusions
        ctx.state.included_files = [
            file for file in ctx.state.changed_files
            if file not in excluded
        ]

        skipped = len(ctx.state.changed_files) - len(ctx.state.included_files)
        if skipped:
            logger.info("Excluded files changed on ignored branches",
                        count=skipped)
        return RunCompiler()
