"""Registry configuration for the npm ecosystem.

Resolves the ``.npmrc`` text the toolchain should see (caller config merged
with the repository file, minus settings a repository must not control and
minus lines that interpolate environment variables), and derives per-scope
registry settings from proposed upgrades for both ``.npmrc`` and
``.yarnrc.yml``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Tuple

import yaml

from artifacts.models import Upgrade, UpdateArtifactsConfig
from common.fs import LocalFileStore
from common.logging_utils import extra_context
from constants import Constants

logger = logging.getLogger(__name__)

_NEWLINE_RE = re.compile(r"\r?\n")


@dataclass
class NpmrcResult:
    """Resolved .npmrc text and the repository file it came from, if any."""
    npmrc: Optional[str]
    npmrc_file_name: Optional[str]


def _strip_lockfile_setting(text: str) -> str:
    lines = text.splitlines(keepends=True)
    return "".join(
        line for line in lines if not line.startswith(Constants.NPMRC_LOCKFILE_SETTING)
    )


def _strip_env_lines(text: str) -> str:
    return "\n".join(
        line for line in _NEWLINE_RE.split(text) if Constants.NPMRC_ENV_MARKER not in line
    )


async def resolve_npmrc(
    package_file: str,
    config: UpdateArtifactsConfig,
    files: LocalFileStore,
    expose_all_env: bool = False,
) -> NpmrcResult:
    """Combine ``config.npmrc`` with the closest repository ``.npmrc``.

    Args:
        package_file: Manifest path the search starts from.
        config: Request configuration (``npmrc``, ``npmrc_merge``).
        files: Workspace file access.
        expose_all_env: Keep lines with ``${VAR}`` interpolation.

    Returns:
        NpmrcResult with the text (None if there is none) and provenance.
    """
    npmrc_file_name = await files.find_local_sibling_or_parent(
        package_file, Constants.NPMRC_FILE
    )
    if not npmrc_file_name:
        return NpmrcResult(npmrc=config.npmrc, npmrc_file_name=None)

    repo_npmrc = await files.read_local_file(npmrc_file_name)
    if not isinstance(repo_npmrc, str):
        logger.debug("Unable to read %s, using configured npmrc only", npmrc_file_name)
        return NpmrcResult(npmrc=config.npmrc, npmrc_file_name=None)

    if config.npmrc is not None and not config.npmrc_merge:
        logger.debug(
            "Repo .npmrc file is ignored due to config.npmrc with config.npmrc_merge=False",
            extra=extra_context(npmrc_file_name=npmrc_file_name),
        )
        return NpmrcResult(npmrc=config.npmrc, npmrc_file_name=npmrc_file_name)

    npmrc = config.npmrc or ""
    if npmrc and not npmrc.endswith("\n"):
        npmrc += "\n"
    if Constants.NPMRC_LOCKFILE_SETTING in repo_npmrc:
        logger.debug("Stripping package-lock setting from .npmrc")
        repo_npmrc = _strip_lockfile_setting(repo_npmrc)
    if Constants.NPMRC_ENV_MARKER in repo_npmrc and not expose_all_env:
        logger.debug(
            "Stripping .npmrc file of lines with variables",
            extra=extra_context(npmrc_file_name=npmrc_file_name),
        )
        repo_npmrc = _strip_env_lines(repo_npmrc)
    return NpmrcResult(npmrc=npmrc + repo_npmrc, npmrc_file_name=npmrc_file_name)


def _scoped_registries(upgrades: List[Upgrade]) -> Iterator[Tuple[str, str]]:
    """Yield ``(@scope, registry_url)`` for the first upgrade of each scope.

    Unscoped packages are skipped: npm has no per-package registry setting
    for them.
    """
    seen = set()
    for upgrade in upgrades:
        registry_url = (upgrade.registry_urls or [None])[0]
        if not registry_url or not upgrade.dep_name:
            continue
        if not upgrade.dep_name.startswith("@"):
            continue
        scope = upgrade.dep_name.split("/")[0]
        if scope in seen:
            continue
        seen.add(scope)
        yield scope, registry_url


def get_registry_npmrc_lines(upgrades: List[Upgrade]) -> List[str]:
    """Convert upgrade registry URLs into ``@scope:registry=<url>`` lines."""
    return [f"{scope}:registry={url}" for scope, url in _scoped_registries(upgrades)]


def get_registry_yarnrc_scopes(upgrades: List[Upgrade]) -> Optional[Dict[str, Any]]:
    """Convert upgrade registry URLs into a yarn v2+ ``npmScopes`` mapping.

    Yarn berry does not read scoped registries from ``.npmrc``. Returns None
    (not an empty mapping) when no upgrade is scoped.
    """
    scopes = {
        scope[1:]: {"npmRegistryServer": url} for scope, url in _scoped_registries(upgrades)
    }
    if not scopes:
        return None
    return {"npmScopes": scopes}


def build_npmrc_text(npmrc: Optional[str], extra_lines: List[str]) -> str:
    """Append ``extra_lines`` to resolved .npmrc text with a single newline at the join."""
    text = npmrc or ""
    if extra_lines:
        if text and not text.endswith("\n"):
            text += "\n"
        text += "\n".join(extra_lines) + "\n"
    return text


def merge_yarnrc(existing: Optional[str], scopes: Optional[Dict[str, Any]]) -> str:
    """Splice ``npmScopes`` into a .yarnrc.yml document.

    Scopes already configured in ``existing`` keep their settings.
    """
    document = yaml.safe_load(existing) if existing else None
    if not isinstance(document, dict):
        document = {}
    if scopes:
        current = document.get("npmScopes")
        if not isinstance(current, dict):
            current = {}
        for scope, settings in scopes.get("npmScopes", {}).items():
            current.setdefault(scope, settings)
        document["npmScopes"] = current
    return yaml.safe_dump(document, default_flow_style=False, sort_keys=False)
