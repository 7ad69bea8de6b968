"""Runs a toolchain against a request inside its private cache root."""

from __future__ import annotations

import logging
import shlex
from typing import List

from artifacts.models import DependentFile, UpdateArtifact
from artifacts.toolchain import Toolchain
from common.exec import ExecResult, LocalExecutor
from common.logging_utils import extra_context, is_debug_enabled

logger = logging.getLogger(__name__)


async def run_toolchain(
    toolchain: Toolchain,
    request: UpdateArtifact,
    dependents: List[DependentFile],
    cache_root: str,
    executor: LocalExecutor,
) -> ExecResult:
    """Write the config artifacts, build the command sequence and execute it.

    Workspace config files requested by the toolchain are only in place for
    the duration of the run.
    """
    leaf_files = [d.name for d in dependents if d.is_leaf]
    logger.debug("Found %d dependent package files", len(leaf_files))

    config_file = await toolchain.build_config_artifact(request, cache_root)
    overlays = await toolchain.workspace_config(request)
    cmds = toolchain.build_commands(request, leaf_files, config_file)
    options = await toolchain.build_exec_options(request, cache_root, config_file)

    if is_debug_enabled(logger):
        logger.debug("Running toolchain commands", extra=extra_context(
            event="exec_plan", component="orchestrator", action=toolchain.name,
            target=request.package_file_name, count=len(cmds),
        ))
        for cmd in cmds:
            logger.debug("  %s", shlex.join(cmd))

    files = toolchain.files
    backup = await files.backup_local_files(list(overlays))
    written = {}
    try:
        for name, content in overlays.items():
            written[name] = backup[name]
            await files.write_local_file(name, content)
        return await executor.run(cmds, options)
    finally:
        if written:
            logger.debug("Restoring workspace config files: %s", ", ".join(written))
            await files.restore_local_files(written)
