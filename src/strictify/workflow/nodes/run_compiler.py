"""RunCompiler node - one strict compile of the whole project."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from strictify.compiler.tsc import compile_project
from strictify.workflow.nodes.aggregate import CorrelateAndAggregate
from strictify.workflow.state import CheckDeps, CheckState


@dataclass
class RunCompiler(BaseNode[CheckState, CheckDeps]):
    """Compile the project with the requested strictness.

    Strictness applies to the whole project; reporting is scoped to
    the change set afterwards. CompilerInvocationError is not caught
    here and aborts the run.
    """

    async def run(
        self, ctx: GraphRunContext[CheckState, CheckDeps]
    ) -> CorrelateAndAggregate:
        ctx.state.diagnostic_lines = await compile_project(
            ctx.deps.compiler, ctx.deps.request.options
        )
        return CorrelateAndAggregate()
