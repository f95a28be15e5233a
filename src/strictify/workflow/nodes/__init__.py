"""Workflow nodes for the check state machine."""

from strictify.workflow.nodes.aggregate import CorrelateAndAggregate
from strictify.workflow.nodes.apply_exclusion import ApplyExclusion
from strictify.workflow.nodes.compute_change_set import ComputeChangeSet
from strictify.workflow.nodes.compute_exclusions import ComputeExclusions
from strictify.workflow.nodes.resolve_revision import ResolveRevision
from strictify.workflow.nodes.run_compiler import RunCompiler

__all__ = [
    "ResolveRevision",
    "ComputeExclusions",
    "ComputeChangeSet",
    "ApplyExclusion",
    "RunCompiler",
    "CorrelateAndAggregate",
]
