"""Strategy contract implemented once per package manager."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from artifacts.models import DependentFile, UpdateArtifact
from common.exec import ExecOptions
from common.fs import LocalFileStore


class Toolchain(ABC):
    """How one ecosystem regenerates its lock files.

    The engine owns gating, snapshots and error classification; a toolchain
    only answers ecosystem questions: which manifests it handles, which lock
    files to watch, what isolated config to write and which commands to run.
    """

    name: str = ""

    def __init__(self, files: LocalFileStore, expose_all_env: bool = False):
        self.files = files
        self.expose_all_env = expose_all_env

    @abstractmethod
    def is_applicable(self, package_file_name: str) -> bool:
        """Return True if lock files can be regenerated for this manifest."""

    @abstractmethod
    async def get_dependent_files(self, package_file_name: str) -> List[DependentFile]:
        """Manifests affected by a change to ``package_file_name``."""

    @abstractmethod
    def lock_file_names(self, dependents: List[DependentFile]) -> List[str]:
        """Lock files to snapshot for the given dependents."""

    @abstractmethod
    async def build_config_artifact(
        self, request: UpdateArtifact, cache_root: str
    ) -> Optional[str]:
        """Write the isolated registry config into ``cache_root``.

        Returns the absolute path of the written file, or None if the
        toolchain needs none for this request.
        """

    @abstractmethod
    def build_commands(
        self, request: UpdateArtifact, leaf_files: List[str], config_file: Optional[str]
    ) -> List[List[str]]:
        """Ordered argv lists to execute."""

    @abstractmethod
    async def build_exec_options(
        self, request: UpdateArtifact, cache_root: str, config_file: Optional[str]
    ) -> ExecOptions:
        """Environment, tool constraints and working directory for the run."""

    async def workspace_config(self, request: UpdateArtifact) -> Dict[str, str]:
        """Config files to place in the workspace while the commands run.

        Maps workspace-relative names to content. The orchestrator puts the
        previous content back, or removes the file, once the run is over.
        """
        return {}

    def error_output(self, err: Exception) -> str:
        """Best available diagnostic text for a failed run."""
        return getattr(err, "stderr", None) or str(err)
