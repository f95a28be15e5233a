"""Attribute compiler output lines to files.

Two strategies:

- substring (default): a line belongs to every file whose path occurs
  anywhere in it. Cheap and format-agnostic, but `a.ts` also claims
  lines about `data.ts`, and identical relative paths from different
  roots are indistinguishable.
- exact: only lines that parse as a tsc diagnostic header count, and
  only for the file named in that header.
"""

from __future__ import annotations

import re
from enum import Enum

# "src/app.ts(3,5): error TS2322: ..." (plain)
# "src/app.ts:3:5 - error TS2322: ..."  (--pretty)
_DIAGNOSTIC_HEADER = re.compile(
    r"^(?P<path>.+?)"
    r"(?:\((?P<line>\d+),(?P<column>\d+)\):"
    r"|:(?P<pline>\d+):(?P<pcolumn>\d+)\s+-)"
    r"\s*(?P<category>error|warning|message)\s+TS(?P<code>\d+)"
)


class MatchMode(str, Enum):
    SUBSTRING = "substring"
    EXACT = "exact"


def normalize_path(path: str) -> str:
    path = path.strip().replace("\\", "/")
    while path.startswith("./"):
        path = path[2:]
    return path


def diagnostic_path(line: str) -> str | None:
    """Path named by a tsc diagnostic header line, if it is one."""
    match = _DIAGNOSTIC_HEADER.match(line)
    if match is None:
        return None
    return normalize_path(match.group("path"))


def line_matches(
    file: str, line: str, mode: MatchMode = MatchMode.SUBSTRING
) -> bool:
    if mode == MatchMode.EXACT:
        return diagnostic_path(line) == normalize_path(file)
    return file in line


def matching_lines(
    file: str, lines: list[str], mode: MatchMode = MatchMode.SUBSTRING
) -> list[str]:
    """Lines attributed to `file`, in output order."""
    return [line for line in lines if line_matches(file, line, mode)]


def count_for(
    file: str, lines: list[str], mode: MatchMode = MatchMode.SUBSTRING
) -> int:
    return len(matching_lines(file, lines, mode))
