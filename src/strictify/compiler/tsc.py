"""Strict TypeScript compiler invocation."""

from __future__ import annotations

import shlex
from pathlib import Path
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from strictify.core.log import logger
from strictify.core.runner import execute_async

# tsc: 1 = diagnostics, outputs skipped; 2 = diagnostics, outputs generated
DIAGNOSTIC_EXIT_CODES = (1, 2)


class CompilerInvocationError(RuntimeError):
    """The compiler failed for a reason other than reporting diagnostics."""


class StrictnessOptions(BaseModel):
    """Compiler toggles that make up the enforced rule set.

    Field names are snake_case in Python and camelCase (the tsc flag
    name) in YAML, on the CLI and when serialized.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )

    no_implicit_any: bool = Field(
        default=True, description="Error on expressions with an implied any"
    )
    no_implicit_this: bool = Field(
        default=True, description="Error on `this` with an implied any"
    )
    always_strict: bool = Field(
        default=True, description="Parse in strict mode, emit 'use strict'"
    )
    strict_bind_call_apply: bool = Field(
        default=True, description="Check bind/call/apply arguments"
    )
    strict_null_checks: bool = Field(
        default=True, description="Treat null and undefined as distinct types"
    )
    strict_function_types: bool = Field(
        default=True, description="Check function parameters contravariantly"
    )
    strict_property_initialization: bool = Field(
        default=True,
        description="Require class properties to be initialized",
    )
    no_emit: bool = Field(
        default=True, description="Only check, do not write output files"
    )


def to_compiler_args(options: StrictnessOptions) -> list[str]:
    """Serialize toggles into tsc arguments.

    A true toggle becomes a bare `--flagName`; a false toggle is left
    out so the project's own tsconfig decides.

    >>> to_compiler_args(StrictnessOptions(no_emit=False))[:2]
    ['--noImplicitAny', '--noImplicitThis']
    """
    return [
        f"--{name}"
        for name, enabled in options.model_dump(by_alias=True).items()
        if enabled
    ]


@runtime_checkable
class CompilerPort(Protocol):
    """Runs the compiler over the whole project.

    Returns the combined output when diagnostics were reported and an
    empty string when there were none. Any other failure raises
    CompilerInvocationError.
    """

    async def run(self, args: list[str]) -> str:
        ...


def _combine(stdout: str, stderr: str) -> str:
    """Both streams, with stderr starting on a line of its own."""
    if stdout and stderr and not stdout.endswith("\n"):
        stdout += "\n"
    return stdout + stderr


class TscCompiler:
    """CompilerPort backed by a `tsc` executable."""

    def __init__(
        self,
        workdir: Path,
        command: str = "tsc",
        diagnostic_exit_codes: tuple[int, ...] = DIAGNOSTIC_EXIT_CODES,
        timeout: int | None = None,
    ):
        self.workdir = Path(workdir)
        self.command = command
        self.diagnostic_exit_codes = tuple(diagnostic_exit_codes)
        self.timeout = timeout

    def build_command(self, args: list[str]) -> str:
        return " ".join(
            [self.command, *(shlex.quote(arg) for arg in args)]
        )

    async def run(self, args: list[str]) -> str:
        cmd = self.build_command(args)
        logger.info("Running compiler", command=cmd)

        result = await execute_async(
            cmd, cwd=self.workdir, timeout=self.timeout, check=False
        )

        if result.exited == 0:
            return ""
        if result.exited in self.diagnostic_exit_codes:
            return _combine(result.stdout, result.stderr)

        if result.exited == -1:
            reason = f"timed out after {self.timeout}s"
        else:
            reason = f"exited with {result.exited}"
        raise CompilerInvocationError(
            f"{cmd} {reason}: {result.stderr.strip() or result.stdout.strip()}"
        )


async def compile_project(
    compiler: CompilerPort, options: StrictnessOptions
) -> list[str]:
    """Compile once and return the diagnostic output as ordered lines.

    Raises:
        CompilerInvocationError: When the compiler itself fails
    """
    output = await compiler.run(to_compiler_args(options))
    lines = output.splitlines()
    logger.info("Compiler finished", diagnostic_lines=len(lines))
    return lines
