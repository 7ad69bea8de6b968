"""Lock file snapshots and the before/after diff."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from artifacts.models import FileAddition, UpdateArtifactsResult
from common.errors import LockFileMissingError
from common.fs import LocalFileStore

logger = logging.getLogger(__name__)

Snapshot = Dict[str, Optional[str]]


async def read_all(files: LocalFileStore, names: List[str]) -> Snapshot:
    """Read every watched file; absent files map to None."""
    return await files.get_local_files(names)


def has_any_content(snapshot: Snapshot) -> bool:
    return any(snapshot.values())


def diff_snapshots(
    names: List[str], before: Snapshot, after: Snapshot
) -> Optional[List[UpdateArtifactsResult]]:
    """Turn two snapshots into addition results.

    Returns None when nothing changed.

    Raises:
        LockFileMissingError: A file present before is absent after.
    """
    results: List[UpdateArtifactsResult] = []
    for name in names:
        old = before.get(name)
        new = after.get(name)
        if old == new:
            logger.debug("Lock file %s is unchanged", name)
        elif new:
            results.append(UpdateArtifactsResult(file=FileAddition(path=name, contents=new)))
        elif old:
            raise LockFileMissingError(name)
    return results or None
