"""Collect raw ref attributes from git."""

import logging
from typing import Callable, Optional

from git_gone.candidate import RawRef, RefKind, RepositoryContext, TrackingState
from git_gone.git import GitRepo, RefEnumerationFailed

logger = logging.getLogger(__name__)

WarningHandler = Callable[[str], None]


def _log_warning(message: str) -> None:
    logger.warning(message)


def enumerate_branches(
    repo: GitRepo,
    context: RepositoryContext,
    on_warning: Optional[WarningHandler] = None,
) -> list[RawRef]:
    """Collect branch attributes.

    The branch listing, gone detection and merge detection are independent;
    a failing source is reported through on_warning and treated as empty.
    """
    warn = on_warning or _log_warning

    try:
        listed = repo.list_branches()
    except RefEnumerationFailed as err:
        warn(str(err))
        listed = {}
    try:
        gone = repo.gone_branches()
    except RefEnumerationFailed as err:
        warn(str(err))
        gone = set()
    try:
        merged = repo.merged_branches(context.default_branch)
    except RefEnumerationFailed as err:
        warn(str(err))
        merged = set()

    names = sorted(set(listed) | gone | merged)
    refs = []
    for name in names:
        upstream, last_commit = listed.get(name, (None, "unknown"))
        if name in gone:
            tracking = TrackingState.GONE
        elif upstream is not None:
            tracking = TrackingState.ACTIVE
        else:
            tracking = TrackingState.NONE
        refs.append(
            RawRef(
                name=name,
                kind=RefKind.BRANCH,
                is_merged=name in merged,
                tracking=tracking,
                last_commit=last_commit,
                upstream=upstream,
            )
        )
    logger.debug("Enumerated %d branches (%d gone, %d merged)", len(refs), len(gone), len(merged))
    return refs


def enumerate_tags(
    repo: GitRepo,
    include_all: bool = False,
    on_warning: Optional[WarningHandler] = None,
) -> list[RawRef]:
    """Collect tag attributes.

    With include_all the remote is not consulted and every tag is returned
    unchecked. Otherwise a tag is stale when its name is missing from the
    remote's tag listing; if that listing fails no tag is returned.
    """
    warn = on_warning or _log_warning

    try:
        local = repo.list_tags()
    except RefEnumerationFailed as err:
        warn(str(err))
        return []

    if include_all:
        return [RawRef(name=name, kind=RefKind.TAG, last_commit=date) for name, date in sorted(local.items())]

    try:
        remote = repo.remote_tags()
    except RefEnumerationFailed as err:
        warn(str(err))
        return []

    return [
        RawRef(name=name, kind=RefKind.TAG, exists_on_remote=name in remote, last_commit=date)
        for name, date in sorted(local.items())
    ]
