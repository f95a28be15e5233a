"""Change-set resolution: fork points, changed files and exclusions.

Every query here degrades instead of raising. A fork point that
cannot be found becomes None, and a file query that fails becomes an
empty result; both are logged.
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Iterable

from strictify.core.log import logger
from strictify.git.vcs import Revision, VcsPort

HEAD = "HEAD"

_SUPPORTED_EXTENSION = re.compile(r"\.tsx?$")


def is_supported_extension(path: str) -> bool:
    """True for TypeScript sources (.ts and .tsx)."""
    return bool(_SUPPORTED_EXTENSION.search(path))


def _ordered_union(*groups: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(path for group in groups for path in group))


async def find_fork_point(
    vcs: VcsPort, branch: str, target_branch: str
) -> Revision | None:
    """Find the commit at which `branch` forked from `target_branch`.

    A missing branch, unrelated histories or a shallow clone all
    yield None. The query is attempted once.
    """
    try:
        revision = await vcs.fork_point(branch, target_branch)
    except Exception as e:
        logger.warn(
            "Can not find fork point",
            branch=branch,
            target_branch=target_branch,
            error=str(e),
        )
        return None

    if revision is None:
        logger.debug(
            "No fork point", branch=branch, target_branch=target_branch
        )
    return revision


async def working_tree_changes(vcs: VcsPort) -> list[str]:
    """Created, modified and untracked files in the working directory."""
    try:
        status = await vcs.working_tree_status()
    except Exception as e:
        logger.warn(
            "Can not find modified and untracked files", error=str(e)
        )
        return []
    return _ordered_union(status.created, status.modified, status.untracked)


async def diff_files(
    vcs: VcsPort, base: Revision | None, head: str
) -> list[str]:
    """Files that differ between `base` and `head`.

    An unknown base carries no information and yields no files.
    """
    if base is None:
        return []
    try:
        summary = await vcs.diff_summary(base, head)
    except Exception as e:
        logger.error(
            "Can not find files changed since revision",
            base=base.sha,
            head=head,
            error=str(e),
        )
        return []
    return _ordered_union(summary.changed_files)


async def collect_change_set(
    vcs: VcsPort, base: Revision | None
) -> list[str]:
    """Working tree and committed changes since `base`, TypeScript only.

    Both queries run concurrently. The result is de-duplicated and
    keeps discovery order: working tree first, then the diff.
    """
    in_tree, committed = await asyncio.gather(
        working_tree_changes(vcs),
        diff_files(vcs, base, HEAD),
    )
    return [
        path for path in _ordered_union(in_tree, committed)
        if is_supported_extension(path)
    ]


async def _files_changed_on_branch(
    vcs: VcsPort, branch: str, target_branch: str
) -> list[str]:
    base = await find_fork_point(vcs, branch, target_branch)
    return await diff_files(vcs, base, branch)


async def compute_exclusions(
    vcs: VcsPort, ignore_branches: Iterable[str], target_branch: str
) -> set[str]:
    """Files changed on any of `ignore_branches` since it forked.

    Branches are queried concurrently. No branches means no
    exclusions.
    """
    branches = list(ignore_branches)
    exclusions: set[str] = set()
    if not branches:
        return exclusions

    per_branch = await asyncio.gather(*(
        _files_changed_on_branch(vcs, branch, target_branch)
        for branch in branches
    ))
    for files in per_branch:
        exclusions.update(files)
    return exclusions
