#!/usr/bin/env python3
"""strictify CLI - strict TypeScript checks for changed files."""

import asyncio
import sys

from pydantic_settings import CliApp, CliSubCommand, get_subcommand

from strictify.command.check import CheckCommand
from strictify.core.config import State
from strictify.core.log import logger


class CliState(State):
    """Ratchet stricter TypeScript compiler settings onto the files
    changed on the current branch.

    The whole project is compiled with the strict options, but only
    diagnostics in files changed since the branch forked from the
    target branch fail the run.

    Configuration sources (in priority order):
    1. Command-line arguments (--config.git.target_branch value)
    2. strictify.yaml in the current directory, --include files
    3. .env file
    4. Environment variables
       (STRICTIFY_CONFIG__GIT__TARGET_BRANCH=value)
    """

    check: CliSubCommand[CheckCommand]

    def cli_cmd(self):
        """Dispatch to the subcommand, or show help if none given."""
        subcommand = get_subcommand(self, is_required=False)

        if subcommand is None:
            CliApp.run(CliState, cli_args=['--help'])
            sys.exit(1)

        # Closing the logger flushes file sinks on exit
        with logger:
            exit_code = asyncio.run(subcommand.run_workflow(self))
            raise SystemExit(exit_code)


def main():
    """Console script entry point."""
    CliApp.run(CliState)


if __name__ == "__main__":
    main()
