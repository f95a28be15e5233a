"""CorrelateAndAggregate node - attribute diagnostics to included files."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, End, GraphRunContext

from strictify.compiler.correlate import matching_lines
from strictify.core.log import logger
from strictify.core.result import CheckFile, ExamineFile, Outcome
from strictify.workflow.state import CheckDeps, CheckState, emit


@dataclass
class CorrelateAndAggregate(BaseNode[CheckState, CheckDeps, Outcome]):
    """Report each included file and total its matching lines."""

    async def run(
        self, ctx: GraphRunContext[CheckState, CheckDeps]
    ) -> End[Outcome]:
        mode = ctx.deps.request.match_mode
        lines = ctx.state.diagnostic_lines
        total = 0

        for file in ctx.state.included_files:
            emit(ctx, ExamineFile(file=file))

            matched = matching_lines(file, lines, mode)
            total += len(matched)
            logger.debug(
                "Checked file", file=file, diagnostics=len(matched)
            )
            emit(ctx, CheckFile(
                file=file,
                has_diagnostics=bool(matched),
                diagnostics=matched,
            ))

        ctx.state.error_count = total
        ctx.state.status = "complete"
        logger.info(
            "Check complete",
            files=len(ctx.state.included_files),
            errors=total,
        )
        return End(Outcome(error_count=total))
