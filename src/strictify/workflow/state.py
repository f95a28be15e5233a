"""Request, dependencies and runtime state of the check workflow."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from pydantic import BaseModel, Field
from pydantic_graph import GraphRunContext

from strictify.compiler.correlate import MatchMode
from strictify.compiler.tsc import CompilerPort, StrictnessOptions
from strictify.core.base import BaseState
from strictify.core.log import logger
from strictify.core.result import StrictifyEvent
from strictify.git.vcs import Revision, VcsPort

EventListener = Callable[[StrictifyEvent], None]


class StrictifyRequest(BaseModel):
    """What the caller asks to be checked."""

    options: StrictnessOptions = Field(default_factory=StrictnessOptions)
    target_branch: str
    ignore_branches: list[str] = Field(default_factory=list)
    match_mode: MatchMode = MatchMode.SUBSTRING


@dataclass
class CheckDeps:
    """External collaborators, passed to nodes as graph deps."""

    request: StrictifyRequest
    vcs: VcsPort
    compiler: CompilerPort
    listener: EventListener | None = None


class CheckState(BaseState):
    """Mutated by each node as the check progresses."""

    since_revision: Revision | None = None
    exclusions: set[str] = Field(default_factory=set)
    changed_files: list[str] = Field(default_factory=list)
    included_files: list[str] = Field(default_factory=list)
    diagnostic_lines: list[str] = Field(default_factory=list)
    error_count: int = 0
    events: list[StrictifyEvent] = Field(default_factory=list)
    status: str = Field(
        default="pending",
        description="pending, running, complete",
    )


def emit(
    ctx: GraphRunContext[CheckState, CheckDeps], event: StrictifyEvent
) -> None:
    """Record an event and hand it to the listener, synchronously."""
    ctx.state.events.append(event)
    logger.trace("Event", kind=event.kind)
    if ctx.deps.listener is not None:
        ctx.deps.listener(event)
