"""Lock file regeneration for NuGet projects via ``dotnet restore``."""

from __future__ import annotations

import logging
import os
import re
from typing import List, Optional

from artifacts.models import DependentFile, UpdateArtifact
from artifacts.toolchain import Toolchain
from common.exec import ExecOptions, ToolConstraint
from common.fs import LocalFileStore, get_sibling_file_name, write_text_file
from constants import Constants, PackageManagers
from registry.nuget.config_formatter import create_nuget_config_xml
from registry.nuget.package_tree import (
    GLOBAL_JSON,
    DependentFileResolver,
    is_central_management_file,
)
from registry.nuget.util import (
    Registry,
    find_global_json,
    get_configured_registries,
    get_default_registries,
)

logger = logging.getLogger(__name__)

_PROJECT_FILE_RE = re.compile(r"(?:cs|vb|fs)proj$", re.IGNORECASE)


def combine_registries(
    configured: List[Registry], additional_urls: List[str]
) -> List[Registry]:
    """Append ``additional_urls`` to ``configured``, deduplicating by URL (first wins)."""
    seen = set()
    combined: List[Registry] = []
    for registry in configured:
        if registry.url and registry.url not in seen:
            seen.add(registry.url)
            combined.append(registry)
    for url in additional_urls:
        if url and url not in seen:
            seen.add(url)
            combined.append(Registry(url=url))
    return combined


def collect_registry_urls(request: UpdateArtifact) -> List[str]:
    """All registry URLs of all upgrades, in order, without duplicates."""
    urls: List[str] = []
    for dep in request.updated_deps:
        for url in dep.registry_urls or []:
            if url and url not in urls:
                urls.append(url)
    return urls


class NuGetToolchain(Toolchain):
    """Restores leaf projects against a generated nuget.config."""

    name = PackageManagers.NUGET.value

    def __init__(self, files: LocalFileStore, expose_all_env: bool = False,
                 resolver: Optional[DependentFileResolver] = None):
        super().__init__(files, expose_all_env)
        self.resolver = resolver or DependentFileResolver()

    def is_applicable(self, package_file_name: str) -> bool:
        if is_central_management_file(package_file_name) or package_file_name == GLOBAL_JSON:
            return True
        # Other MSBuild files would need a way to find the projects importing them
        return bool(_PROJECT_FILE_RE.search(package_file_name))

    async def get_dependent_files(self, package_file_name: str) -> List[DependentFile]:
        return await self.resolver.resolve(
            package_file_name,
            is_central_management_file(package_file_name),
            package_file_name == GLOBAL_JSON,
        )

    def lock_file_names(self, dependents: List[DependentFile]) -> List[str]:
        return [get_sibling_file_name(d.name, Constants.NUGET_LOCK_FILE) for d in dependents]

    async def build_config_artifact(
        self, request: UpdateArtifact, cache_root: str
    ) -> Optional[str]:
        configured = await get_configured_registries(self.files, request.package_file_name)
        if configured is None:
            configured = get_default_registries()
        registries = combine_registries(configured, collect_registry_urls(request))
        path = os.path.join(cache_root, Constants.NUGET_CONFIG_FILE)
        await write_text_file(path, create_nuget_config_xml(registries))
        return path

    def build_commands(
        self, request: UpdateArtifact, leaf_files: List[str], config_file: Optional[str]
    ) -> List[List[str]]:
        if config_file is None:
            raise ValueError("dotnet restore needs a generated nuget.config")
        cmds = [
            ["dotnet", "restore", file_name, "--force-evaluate", "--configfile", config_file]
            for file_name in leaf_files
        ]
        if Constants.NUGET_WORKLOAD_RESTORE_OPTION in request.config.post_update_options:
            cmds.insert(0, ["dotnet", "workload", "restore", "--configfile", config_file])
        return cmds

    async def _dotnet_version(self, request: UpdateArtifact) -> Optional[str]:
        version = request.config.constraints.get("dotnet")
        if version:
            return version
        global_json = await find_global_json(self.files, request.package_file_name)
        sdk = (global_json or {}).get("sdk")
        if isinstance(sdk, dict) and isinstance(sdk.get("version"), str):
            return sdk["version"]
        return None

    async def build_exec_options(
        self, request: UpdateArtifact, cache_root: str, config_file: Optional[str]
    ) -> ExecOptions:
        return ExecOptions(
            extra_env={
                "NUGET_PACKAGES": os.path.join(cache_root, "packages"),
                # dotnet leaves MSBuild worker nodes running otherwise
                "MSBUILDDISABLENODEREUSE": "1",
            },
            tool_constraints=[ToolConstraint("dotnet", await self._dotnet_version(request))],
        )

    def error_output(self, err: Exception) -> str:
        # dotnet writes restore errors to stdout
        return getattr(err, "stdout", None) or getattr(err, "stderr", None) or str(err)
