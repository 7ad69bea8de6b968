"""Data models for artifact update requests and results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class Upgrade:
    """A proposed dependency change."""
    dep_name: Optional[str] = None
    registry_urls: Optional[List[str]] = None  # first entry is authoritative


@dataclass
class UpdateArtifactsConfig:
    """Per-request configuration bag."""
    npmrc: Optional[str] = None
    npmrc_merge: bool = False
    constraints: Dict[str, str] = field(default_factory=dict)
    post_update_options: List[str] = field(default_factory=list)
    is_lock_file_maintenance: bool = False


@dataclass(frozen=True)
class UpdateArtifact:
    """Input for one artifact update."""
    package_file_name: str
    new_package_file_content: str
    updated_deps: List[Upgrade] = field(default_factory=list)
    config: UpdateArtifactsConfig = field(default_factory=UpdateArtifactsConfig)


@dataclass
class DependentFile:
    """A manifest affected by a change; only leaves are restored."""
    name: str
    is_leaf: bool


@dataclass
class FileAddition:
    """New full content for a lock file."""
    path: str
    contents: str
    type: str = "addition"


@dataclass
class ArtifactError:
    """User-visible failure for the watched lock files."""
    lock_file: str
    stderr: str


@dataclass
class UpdateArtifactsResult:
    """Either a file addition or an artifact error."""
    file: Optional[FileAddition] = None
    artifact_error: Optional[ArtifactError] = None

    def to_dict(self) -> Dict[str, Any]:
        if self.artifact_error is not None:
            return {
                "artifactError": {
                    "lockFile": self.artifact_error.lock_file,
                    "stderr": self.artifact_error.stderr,
                }
            }
        if self.file is None:
            raise ValueError("Result holds neither a file nor an artifact error")
        return {
            "file": {
                "type": self.file.type,
                "path": self.file.path,
                "contents": self.file.contents,
            }
        }
