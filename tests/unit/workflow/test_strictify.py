"""End-to-end tests of the check workflow against fake ports."""

import asyncio

import pytest

from strictify.compiler.correlate import MatchMode
from strictify.compiler.tsc import CompilerInvocationError
from strictify.core.result import (
    CheckFile,
    ExamineFile,
    FoundChangedFiles,
    FoundSinceRevision,
)
from strictify.git.vcs import Revision, WorkingTreeStatus
from strictify.workflow.graph import create_workflow, strictify
from strictify.workflow.state import StrictifyRequest

TS2322 = "app.ts(3,5): error TS2322: Type 'string' is not assignable."


def _request(**kwargs):
    kwargs.setdefault("target_branch", "master")
    return StrictifyRequest(**kwargs)


def _check(vcs, compiler, listener=None, **request):
    return asyncio.run(
        strictify(_request(**request), vcs, compiler, listener=listener)
    )


def _kinds(report):
    return [event.kind for event in report.events]


def test_graph_has_all_nodes():
    graph = create_workflow()

    assert set(graph.node_defs) == {
        "ResolveRevision",
        "ComputeExclusions",
        "ComputeChangeSet",
        "ApplyExclusion",
        "RunCompiler",
        "CorrelateAndAggregate",
    }


def test_no_fork_point_and_clean_tree(make_vcs, make_compiler):
    vcs = make_vcs()
    compiler = make_compiler(output=TS2322)

    report = _check(vcs, compiler)

    assert report.outcome.success is True
    assert report.outcome.error_count == 0
    assert report.events == [
        FoundSinceRevision(revision=None),
        FoundChangedFiles(files=[]),
    ]
    # Nothing changed, so the compiler never runs
    assert compiler.calls == []
    assert not any(call[0] == "diff_summary" for call in vcs.calls)


def test_clean_compile(make_vcs, make_compiler):
    vcs = make_vcs(
        fork_points={("HEAD", "master"): "base"},
        diffs={("base", "HEAD"): ["app.ts"]},
    )

    report = _check(vcs, make_compiler(output=""))

    assert report.outcome.success is True
    assert report.outcome.error_count == 0
    assert report.file_results == {"app.ts": False}


def test_single_diagnostic(make_vcs, make_compiler):
    vcs = make_vcs(
        fork_points={("HEAD", "master"): "base"},
        diffs={("base", "HEAD"): ["app.ts"]},
    )

    report = _check(vcs, make_compiler(output=TS2322 + "\n"))

    assert report.outcome.success is False
    assert report.outcome.error_count == 1
    assert report.events[-1] == CheckFile(
        file="app.ts", has_diagnostics=True, diagnostics=[TS2322]
    )


def test_excluded_file_not_checked(make_vcs, make_compiler):
    vcs = make_vcs(
        fork_points={
            ("HEAD", "master"): "base",
            ("feature/other", "master"): "other-base",
        },
        diffs={
            ("base", "HEAD"): ["app.ts", "own.ts"],
            ("other-base", "feature/other"): ["app.ts"],
        },
    )

    report = _check(
        vcs,
        make_compiler(output=TS2322),
        ignore_branches=["feature/other"],
    )

    assert report.file_results == {"own.ts": False}
    assert report.outcome.error_count == 0
    assert "app.ts" not in [
        getattr(event, "file", None) for event in report.events
    ]


def test_event_order(make_vcs, make_compiler):
    vcs = make_vcs(
        fork_points={("HEAD", "master"): "base"},
        status=WorkingTreeStatus(untracked=["b.ts", "notes.md"]),
        diffs={("base", "HEAD"): ["a.ts"]},
    )

    report = _check(vcs, make_compiler(output="a.ts(1,1): error TS1\n"))

    assert _kinds(report) == [
        "found_since_revision",
        "found_changed_files",
        "examine_file",
        "check_file",
        "examine_file",
        "check_file",
    ]
    assert report.events[0] == FoundSinceRevision(
        revision=Revision(sha="base")
    )
    assert report.events[1] == FoundChangedFiles(files=["b.ts", "a.ts"])
    assert report.events[2] == ExamineFile(file="b.ts")


def test_listener_sees_events_in_order(make_vcs, make_compiler):
    vcs = make_vcs(
        fork_points={("HEAD", "master"): "base"},
        diffs={("base", "HEAD"): ["app.ts"]},
    )
    seen = []

    report = _check(vcs, make_compiler(), listener=seen.append)

    assert seen == report.events


def test_error_count_sums_lines_not_files(make_vcs, make_compiler):
    output = "\n".join([
        "src/a.ts(1,1): error TS7006: x",
        "src/a.ts(2,1): error TS7006: y",
        "src/b.ts(1,1): error TS2531: z",
        "src/untouched.ts(1,1): error TS2531: not counted",
    ])
    vcs = make_vcs(
        fork_points={("HEAD", "master"): "base"},
        diffs={("base", "HEAD"): ["src/a.ts", "src/b.ts", "src/c.ts"]},
    )

    report = _check(vcs, make_compiler(output=output))

    assert report.outcome.error_count == 3
    assert report.file_results == {
        "src/a.ts": True,
        "src/b.ts": True,
        "src/c.ts": False,
    }


@pytest.mark.parametrize(
    "mode, expected", [(MatchMode.SUBSTRING, 2), (MatchMode.EXACT, 1)]
)
def test_match_mode(make_vcs, make_compiler, mode, expected):
    output = "a.ts(1,1): error TS1: x\ndata.ts(1,1): error TS1: y\n"
    vcs = make_vcs(
        fork_points={("HEAD", "master"): "base"},
        diffs={("base", "HEAD"): ["a.ts"]},
    )

    report = _check(vcs, make_compiler(output=output), match_mode=mode)

    assert report.outcome.error_count == expected


def test_included_never_intersects_exclusions(make_vcs, make_compiler):
    vcs = make_vcs(
        fork_points={("HEAD", "master"): "b0", ("x", "master"): "b1"},
        status=WorkingTreeStatus(modified=["one.ts", "two.ts"]),
        diffs={("b0", "HEAD"): ["three.tsx"], ("b1", "x"): ["two.ts"]},
    )

    report = _check(vcs, make_compiler(), ignore_branches=["x"])

    assert set(report.file_results) == {"one.ts", "three.tsx"}


def test_compiler_runs_once_with_flags(make_vcs, make_compiler):
    vcs = make_vcs(status=WorkingTreeStatus(modified=["a.ts", "b.ts"]))
    compiler = make_compiler()

    _check(vcs, compiler)

    assert len(compiler.calls) == 1
    assert "--strictNullChecks" in compiler.calls[0]


def test_vcs_failures_degrade(make_vcs, make_compiler):
    vcs = make_vcs(
        status=WorkingTreeStatus(modified=["a.ts"]),
        failing={"fork_point"},
    )

    report = _check(vcs, make_compiler(), ignore_branches=["x"])

    assert report.events[0] == FoundSinceRevision(revision=None)
    assert report.file_results == {"a.ts": False}


def test_compiler_failure_propagates(make_vcs, make_compiler):
    vcs = make_vcs(status=WorkingTreeStatus(modified=["a.ts"]))
    compiler = make_compiler(error=CompilerInvocationError("tsc: not found"))
    seen = []

    with pytest.raises(CompilerInvocationError):
        _check(vcs, compiler, listener=seen.append)

    assert "check_file" not in [event.kind for event in seen]


def test_repeated_runs_are_stable(make_vcs, make_compiler):
    vcs = make_vcs(
        fork_points={("HEAD", "master"): "base"},
        status=WorkingTreeStatus(modified=["b.ts"]),
        diffs={("base", "HEAD"): ["a.ts"]},
    )

    first = _check(vcs, make_compiler())
    second = _check(vcs, make_compiler())

    assert first.events == second.events
