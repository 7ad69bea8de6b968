"""NuGet helpers: registry discovery from nuget.config and SDK pinning via global.json."""

from __future__ import annotations

import json
import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from common.fs import LocalFileStore
from common.logging_utils import safe_url
from constants import Constants

logger = logging.getLogger(__name__)


@dataclass
class Registry:
    """A NuGet package source."""
    url: str
    name: Optional[str] = None
    protocol_version: Optional[int] = None


def get_default_registries() -> List[Registry]:
    return [
        Registry(
            url=Constants.NUGET_DEFAULT_REGISTRY_URL,
            name=Constants.NUGET_DEFAULT_REGISTRY_NAME,
            protocol_version=3,
        )
    ]


def _strip_jsonc_comments(content: str) -> str:
    """Strip ``//`` and ``/* */`` comments and trailing commas from JSONC text."""
    content = re.sub(r'/\*.*?\*/', '', content, flags=re.DOTALL)
    content = re.sub(r'(^|\s)//.*?$', r'\1', content, flags=re.MULTILINE)
    content = re.sub(r',(\s*[}\]])', r'\1', content)
    return content


async def find_global_json(
    files: LocalFileStore, package_file_name: str
) -> Optional[Dict[str, Any]]:
    """Load the closest global.json, or None if missing or invalid."""
    global_json_name = await files.find_local_sibling_or_parent(
        package_file_name, Constants.GLOBAL_JSON_FILE
    )
    if not global_json_name:
        return None
    content = await files.read_local_file(global_json_name)
    if not content:
        logger.debug("No content found in %s", global_json_name)
        return None
    try:
        data = json.loads(_strip_jsonc_comments(content))
    except json.JSONDecodeError as e:
        logger.debug("Invalid %s: %s", global_json_name, e)
        return None
    return data if isinstance(data, dict) else None


def _strip_namespaces(root: ET.Element) -> None:
    for elem in root.iter():
        if isinstance(elem.tag, str) and '}' in elem.tag:
            elem.tag = elem.tag.split('}')[1]


def _parse_protocol_version(value: Optional[str]) -> Optional[int]:
    if value and value.strip().isdigit():
        return int(value.strip())
    return None


def parse_package_sources(content: str) -> Optional[List[Registry]]:
    """Read ``<packageSources>`` from nuget.config content.

    Without ``<clear />`` the machine-level default source stays in effect,
    so it is listed first. Returns None if there is no packageSources element.
    """
    root = ET.fromstring(content)
    _strip_namespaces(root)
    package_sources = root.find("packageSources")
    if package_sources is None:
        return None

    registries = get_default_registries()
    for child in package_sources:
        if child.tag == "clear":
            registries = []
        elif child.tag == "add":
            url = child.get("value")
            if not url:
                continue
            registries.append(Registry(
                url=url,
                name=child.get("key"),
                protocol_version=_parse_protocol_version(child.get("protocolVersion")),
            ))
        elif child.tag == "remove":
            key = child.get("key")
            registries = [r for r in registries if r.name != key]
    return registries


async def get_configured_registries(
    files: LocalFileStore, package_file_name: str
) -> Optional[List[Registry]]:
    """Registries from the closest nuget.config, or None if there is none."""
    config_file_name = None
    for candidate in Constants.NUGET_CONFIG_FILE_NAMES:
        config_file_name = await files.find_local_sibling_or_parent(package_file_name, candidate)
        if config_file_name:
            break
    if not config_file_name:
        return None

    content = await files.read_local_file(config_file_name)
    if not content:
        return None
    try:
        registries = parse_package_sources(content)
    except ET.ParseError as e:
        logger.warning("Couldn't parse %s: %s", config_file_name, e)
        return None
    if registries is not None:
        logger.debug(
            "Found registries in %s: %s",
            config_file_name,
            ", ".join(safe_url(r.url) or "" for r in registries),
        )
    return registries
