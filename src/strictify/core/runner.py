"""Command execution on top of invoke."""

import asyncio
import contextlib
import os
import platform
from pathlib import Path

from invoke import Context, Result
from invoke.exceptions import CommandTimedOut

from strictify.core.log import logger


class Runner(Context):
    """invoke.Context with a single execute() entry point.

    A Runner keeps per-instance cwd state, so concurrent callers each
    get their own instance (see execute_async).
    """

    def kill(self) -> None:
        """Kill the running subprocess.

        invoke sends signal.SIGKILL, which Windows does not define;
        os.kill there accepts the plain number.
        """
        if platform.system() == "Windows":
            pid = self.pid if self.using_pty else self.process.pid
            with contextlib.suppress(ProcessLookupError):
                os.kill(pid, 9)
            return

        super().kill()

    def execute(
        self,
        command: str,
        cwd: Path | None = None,
        timeout: int | None = None,
        log_level: str | None = None,
        check: bool = True,
        env: dict[str, str] | None = None,
    ) -> Result:
        """Execute a shell command and capture its output.

        Args:
            command: Command string to execute
            cwd: Working directory for command execution
            timeout: Maximum execution time in seconds
            log_level: If set, echo each output line to the logger
                at this level
            check: If True, raise on non-zero exit code
            env: Extra environment variables (merged into os.environ)

        Returns:
            invoke.Result with stdout, stderr and exited. A timed out
            command comes back with exited == -1.

        Raises:
            invoke.UnexpectedExit: If check=True and command
                returns non-zero
        """
        kwargs = {
            "hide": True,
            "warn": not check,
            "in_stream": False,
        }
        if timeout:
            kwargs["timeout"] = timeout
        if env:
            kwargs["env"] = env

        logger.spew("Running command", command=command, cwd=str(cwd or ""))

        try:
            if cwd:
                with self.cd(str(cwd)):
                    result = self.run(command, **kwargs)
            else:
                result = self.run(command, **kwargs)
        except CommandTimedOut as e:
            logger.warn("Command timed out", command=command, timeout=timeout)
            result = e.result
            result.exited = -1

        logger.spew("Command exited", command=command, exited=result.exited)

        if log_level:
            for line in (result.stdout + result.stderr).splitlines():
                logger.log(log_level, "{line}", line=line.rstrip())

        return result


async def execute_async(command: str, **kwargs) -> Result:
    """Run Runner.execute off the event loop.

    Each call gets a fresh Runner so that concurrent commands never
    share cwd state.
    """
    return await asyncio.to_thread(Runner().execute, command, **kwargs)
