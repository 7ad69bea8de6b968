"""Artifact update pipeline shared by all package managers.

Flow for one request: applicability gate, dependent-file lookup, "before"
snapshot, no-op gates, manifest write, toolchain run, "after" snapshot, diff.
Failures after the gates are classified: temporary errors propagate, all
others become a single ArtifactError result.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from artifacts.models import ArtifactError, UpdateArtifact, UpdateArtifactsResult
from artifacts.orchestrator import run_toolchain
from artifacts.snapshot import diff_snapshots, has_any_content, read_all
from artifacts.toolchain import Toolchain
from common.cache import PrivateCache
from common.errors import is_temporary_error
from common.exec import LocalExecutor
from common.fs import LocalFileStore
from common.logging_utils import extra_context

logger = logging.getLogger(__name__)


async def update_artifacts(
    request: UpdateArtifact,
    toolchain: Toolchain,
    *,
    files: LocalFileStore,
    executor: LocalExecutor,
    cache: PrivateCache,
) -> Optional[List[UpdateArtifactsResult]]:
    """Regenerate the lock files affected by ``request``.

    Returns:
        None when nothing applies or nothing changed, a list of file
        additions on success, or a single-element list holding an
        ArtifactError.

    Raises:
        TemporaryError: Infrastructure failure; retry at a higher level.
    """
    package_file_name = request.package_file_name
    logger.debug("%s.update_artifacts(%s)", toolchain.name, package_file_name)

    if not toolchain.is_applicable(package_file_name):
        logger.debug("Not updating lock file for unsupported package file", extra=extra_context(
            event="decision", component="engine", action="gate",
            target=package_file_name, outcome="not_applicable",
        ))
        return None

    dependents = await toolchain.get_dependent_files(package_file_name)
    lock_file_names = toolchain.lock_file_names(dependents)

    existing = await read_all(files, lock_file_names)
    if not has_any_content(existing):
        logger.debug("No lock file found for package or dependents", extra=extra_context(
            event="decision", component="engine", action="gate",
            target=package_file_name, outcome="no_lock_file",
        ))
        return None

    if not request.updated_deps and not request.config.is_lock_file_maintenance:
        logger.debug(
            "Not updating lock file because no deps changed and no lock file maintenance."
        )
        return None

    cache_root: Optional[str] = None
    try:
        await files.write_local_file(package_file_name, request.new_package_file_content)
        cache_root = await cache.request_dir(toolchain.name, package_file_name)
        await run_toolchain(toolchain, request, dependents, cache_root, executor)
        updated = await read_all(files, lock_file_names)
        return diff_snapshots(lock_file_names, existing, updated)
    except Exception as err:  # pylint: disable=broad-exception-caught
        if is_temporary_error(err):
            raise
        logger.debug("Failed to generate lock file: %s", err)
        return [
            UpdateArtifactsResult(
                artifact_error=ArtifactError(
                    lock_file=", ".join(lock_file_names),
                    stderr=toolchain.error_output(err),
                )
            )
        ]
    finally:
        if cache_root is not None:
            await cache.release(cache_root)
