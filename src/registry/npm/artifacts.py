"""Lock file regeneration for npm and yarn (berry) projects."""

from __future__ import annotations

import logging
import os
from typing import Dict, List, Optional

from artifacts.models import DependentFile, UpdateArtifact
from artifacts.toolchain import Toolchain
from common.exec import ExecOptions, ToolConstraint
from common.fs import get_sibling_file_name, write_text_file
from constants import Constants, PackageManagers
from registry.npm.npmrc import (
    build_npmrc_text,
    get_registry_npmrc_lines,
    get_registry_yarnrc_scopes,
    merge_yarnrc,
    resolve_npmrc,
)

logger = logging.getLogger(__name__)


class _JavaScriptToolchain(Toolchain):
    """Shared behaviour of npm-registry based managers."""

    lock_file_name = ""

    def is_applicable(self, package_file_name: str) -> bool:
        return os.path.basename(package_file_name) == Constants.PACKAGE_JSON_FILE

    async def get_dependent_files(self, package_file_name: str) -> List[DependentFile]:
        return [DependentFile(name=package_file_name, is_leaf=True)]

    def lock_file_names(self, dependents: List[DependentFile]) -> List[str]:
        return [get_sibling_file_name(d.name, self.lock_file_name) for d in dependents]

    async def _node_constraint(self, request: UpdateArtifact) -> Optional[str]:
        constraint = request.config.constraints.get("node")
        if constraint:
            return constraint
        nvmrc = await self.files.find_local_sibling_or_parent(
            request.package_file_name, Constants.NVMRC_FILE
        )
        if not nvmrc:
            return None
        content = await self.files.read_local_file(nvmrc)
        if not content or not content.strip():
            return None
        return content.strip()


class NpmToolchain(_JavaScriptToolchain):
    """``npm install --package-lock-only`` against an isolated user config."""

    name = PackageManagers.NPM.value
    lock_file_name = Constants.PACKAGE_LOCK_FILE

    async def _npmrc_text(self, request: UpdateArtifact) -> str:
        resolved = await resolve_npmrc(
            request.package_file_name, request.config, self.files, self.expose_all_env
        )
        if resolved.npmrc_file_name:
            logger.debug("Using registry config from %s", resolved.npmrc_file_name)
        return build_npmrc_text(resolved.npmrc, get_registry_npmrc_lines(request.updated_deps))

    async def build_config_artifact(
        self, request: UpdateArtifact, cache_root: str
    ) -> Optional[str]:
        path = os.path.join(cache_root, Constants.NPMRC_FILE)
        await write_text_file(path, await self._npmrc_text(request))
        return path

    async def workspace_config(self, request: UpdateArtifact) -> Dict[str, str]:
        # npm reads the project .npmrc next to package.json ahead of --userconfig
        project_npmrc = get_sibling_file_name(request.package_file_name, Constants.NPMRC_FILE)
        return {project_npmrc: await self._npmrc_text(request)}

    def build_commands(
        self, request: UpdateArtifact, leaf_files: List[str], config_file: Optional[str]
    ) -> List[List[str]]:
        cmd = [
            "npm", "install",
            "--package-lock-only",
            "--ignore-scripts",
            "--no-audit",
            "--no-fund",
            "--package-lock=true",
        ]
        if config_file:
            cmd += ["--userconfig", config_file]
        return [cmd]

    async def build_exec_options(
        self, request: UpdateArtifact, cache_root: str, config_file: Optional[str]
    ) -> ExecOptions:
        extra_env = {"npm_config_cache": os.path.join(cache_root, "npm-cache")}
        if config_file:
            extra_env["npm_config_userconfig"] = config_file
        return ExecOptions(
            extra_env=extra_env,
            tool_constraints=[
                ToolConstraint("node", await self._node_constraint(request)),
                ToolConstraint("npm", request.config.constraints.get("npm")),
            ],
            cwd_file=request.package_file_name,
        )


class YarnToolchain(_JavaScriptToolchain):
    """``yarn install --mode=update-lockfile`` with scoped registries in a private HOME."""

    name = PackageManagers.YARN.value
    lock_file_name = Constants.YARN_LOCK_FILE

    async def build_config_artifact(
        self, request: UpdateArtifact, cache_root: str
    ) -> Optional[str]:
        scopes = get_registry_yarnrc_scopes(request.updated_deps)
        if scopes is None:
            return None
        path = os.path.join(cache_root, Constants.YARNRC_FILE)
        await write_text_file(path, merge_yarnrc(None, scopes))
        return path

    def build_commands(
        self, request: UpdateArtifact, leaf_files: List[str], config_file: Optional[str]
    ) -> List[List[str]]:
        return [["yarn", "install", "--mode=update-lockfile"]]

    async def build_exec_options(
        self, request: UpdateArtifact, cache_root: str, config_file: Optional[str]
    ) -> ExecOptions:
        extra_env = {
            "YARN_CACHE_FOLDER": os.path.join(cache_root, "yarn-cache"),
            "YARN_ENABLE_GLOBAL_CACHE": "false",
            "YARN_ENABLE_TELEMETRY": "0",
        }
        if config_file:
            # yarn reads ~/.yarnrc.yml as the user-level config
            extra_env["HOME"] = os.path.dirname(config_file)
        return ExecOptions(
            extra_env=extra_env,
            tool_constraints=[
                ToolConstraint("node", await self._node_constraint(request)),
                ToolConstraint("yarn", request.config.constraints.get("yarn")),
            ],
            cwd_file=request.package_file_name,
        )
