"""Check workflow graph and the library entry point."""

from __future__ import annotations

from pydantic_graph import Graph

from strictify.compiler.tsc import CompilerPort
from strictify.core.log import logger
from strictify.core.result import StrictifyReport
from strictify.git.vcs import VcsPort
from strictify.workflow.state import (
    CheckDeps,
    CheckState,
    EventListener,
    StrictifyRequest,
)


def create_workflow():
    """Create the check workflow graph.

    Linear, no back edges:
    ResolveRevision -> ComputeExclusions -> ComputeChangeSet ->
        [end if nothing changed] -> ApplyExclusion -> RunCompiler ->
        CorrelateAndAggregate -> end

    Returns:
        Graph with CheckState as state and CheckDeps as deps
    """
    logger.debug("Building workflow graph")

    from strictify.workflow.nodes import (
        ApplyExclusion,
        ComputeChangeSet,
        ComputeExclusions,
        CorrelateAndAggregate,
        ResolveRevision,
        RunCompiler,
    )

    return Graph(
        nodes=(
            ResolveRevision,
            ComputeExclusions,
            ComputeChangeSet,
            ApplyExclusion,
            RunCompiler,
            CorrelateAndAggregate,
        ),
        state_type=CheckState,
        name="strictify",
    )


async def strictify(
    request: StrictifyRequest,
    vcs: VcsPort,
    compiler: CompilerPort,
    listener: EventListener | None = None,
) -> StrictifyReport:
    """Check the files changed on this branch under strict settings.

    Events are delivered to `listener` as they happen and are also
    returned, in the same order, on the report.

    Raises:
        CompilerInvocationError: If the compiler could not run. No
            partial report is produced.
    """
    from strictify.workflow.nodes import ResolveRevision

    state = CheckState()
    deps = CheckDeps(
        request=request, vcs=vcs, compiler=compiler, listener=listener
    )

    result = await create_workflow().run(
        ResolveRevision(), state=state, deps=deps
    )
    return StrictifyReport(outcome=result.output, events=state.events)
