"""NuGet package manager support.

- artifacts.py: packages.lock.json regeneration via ``dotnet restore``
- config_formatter.py: isolated nuget.config rendering
- package_tree.py: central version files and dependent project lookup
- util.py: nuget.config registry discovery and global.json SDK pinning
"""

from .artifacts import NuGetToolchain  # noqa: F401
from .package_tree import DependentFileResolver  # noqa: F401

__all__ = [
    "NuGetToolchain",
    "DependentFileResolver",
]
