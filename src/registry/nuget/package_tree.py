"""Dependent project lookup for NuGet manifests.

Working out which projects import a central version file is the job of the
extraction layer; relock consumes its answer through ``DependentFileResolver``.
"""

from __future__ import annotations

from typing import List

from artifacts.models import DependentFile
from constants import Constants

NUGET_CENTRAL_FILE = Constants.NUGET_CENTRAL_FILE
MSBUILD_CENTRAL_FILE = Constants.MSBUILD_CENTRAL_FILE
GLOBAL_JSON = Constants.GLOBAL_JSON_FILE


def is_central_management_file(package_file_name: str) -> bool:
    """True for Directory.Packages.props / Packages.props at any depth."""
    return any(
        package_file_name == name or package_file_name.endswith(f"/{name}")
        for name in (NUGET_CENTRAL_FILE, MSBUILD_CENTRAL_FILE)
    )


class DependentFileResolver:
    """Resolves the projects affected by a change to a NuGet manifest.

    The default only knows about the manifest itself. Central version files
    and global.json are never leaves, so callers that need restores for them
    must supply a resolver backed by the project graph.
    """

    async def resolve(
        self, package_file_name: str, is_central_management: bool, is_global_json: bool
    ) -> List[DependentFile]:
        return [
            DependentFile(
                name=package_file_name,
                is_leaf=not is_central_management and not is_global_json,
            )
        ]
