"""Workspace file access for the artifact pipeline.

All paths handed to ``LocalFileStore`` are relative to the workspace root
(``local_dir``) and use forward slashes, matching how manifest paths are
reported by the extraction layer. Blocking IO runs in worker threads so
several requests can share an event loop.
"""

from __future__ import annotations

import asyncio
import logging
import os
import posixpath
from typing import Dict, List, Optional

from common.logging_utils import extra_context, is_debug_enabled

logger = logging.getLogger(__name__)


def get_sibling_file_name(file_name: str, sibling_name: str) -> str:
    """Return the path of ``sibling_name`` in the same directory as ``file_name``."""
    return posixpath.join(posixpath.dirname(file_name), sibling_name)


def _write_text(path: str, content: str) -> None:
    with open(path, "w", encoding="utf-8") as f:
        f.write(content)


async def write_text_file(path: str, content: str) -> None:
    """Write ``content`` to an absolute path outside the workspace, e.g. a cache root."""
    await asyncio.to_thread(_write_text, path, content)


class LocalFileStore:
    """Reads and writes files below a workspace root."""

    def __init__(self, local_dir: str):
        self.local_dir = os.path.abspath(local_dir)

    def full_path(self, file_name: str) -> str:
        """Resolve a workspace-relative name, refusing paths that escape the root."""
        path = os.path.abspath(os.path.join(self.local_dir, file_name))
        if path != self.local_dir and not path.startswith(self.local_dir + os.sep):
            raise ValueError(f"Path {file_name} is outside of the workspace")
        return path

    def _read(self, file_name: str) -> Optional[str]:
        try:
            with open(self.full_path(file_name), "r", encoding="utf-8", newline="") as f:
                return f.read()
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
            return None
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("Failed to read %s: %s", file_name, e)
            return None

    def _write(self, file_name: str, content: str) -> None:
        path = self.full_path(file_name)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(content)

    async def read_local_file(self, file_name: str) -> Optional[str]:
        """Return the file content, or None if it does not exist or is unreadable."""
        return await asyncio.to_thread(self._read, file_name)

    async def write_local_file(self, file_name: str, content: str) -> None:
        """Overwrite ``file_name`` with ``content``, creating parent directories."""
        await asyncio.to_thread(self._write, file_name, content)

    def _read_bytes(self, file_name: str) -> Optional[bytes]:
        try:
            with open(self.full_path(file_name), "rb") as f:
                return f.read()
        except FileNotFoundError:
            return None

    def _restore(self, file_name: str, content: Optional[bytes]) -> None:
        path = self.full_path(file_name)
        if content is None:
            try:
                os.unlink(path)
            except FileNotFoundError:
                pass
            return
        with open(path, "wb") as f:
            f.write(content)

    async def backup_local_files(self, file_names: List[str]) -> Dict[str, Optional[bytes]]:
        """Capture the exact bytes of ``file_names``; absent files map to None."""
        contents = await asyncio.gather(
            *(asyncio.to_thread(self._read_bytes, name) for name in file_names)
        )
        return dict(zip(file_names, contents))

    async def restore_local_files(self, backup: Dict[str, Optional[bytes]]) -> None:
        """Put back content captured by ``backup_local_files``, removing files that were absent."""
        for file_name, content in backup.items():
            await asyncio.to_thread(self._restore, file_name, content)

    async def local_path_exists(self, file_name: str) -> bool:
        return await asyncio.to_thread(os.path.exists, self.full_path(file_name))

    async def get_local_files(self, file_names: List[str]) -> Dict[str, Optional[str]]:
        """Read several files concurrently."""
        contents = await asyncio.gather(*(self.read_local_file(name) for name in file_names))
        return dict(zip(file_names, contents))

    async def find_local_sibling_or_parent(
        self, existing_file_name: str, other_file_name: str
    ) -> Optional[str]:
        """Walk upward from ``existing_file_name`` looking for ``other_file_name``.

        Returns the workspace-relative path of the first match, or None. The
        search never leaves the workspace root.
        """
        if posixpath.isabs(existing_file_name) or ".." in existing_file_name.split("/"):
            return None
        current = posixpath.dirname(existing_file_name)
        while True:
            candidate = posixpath.join(current, other_file_name)
            if await self.local_path_exists(candidate):
                if is_debug_enabled(logger):
                    logger.debug("Found sibling or parent file", extra=extra_context(
                        event="decision", component="fs", action="find_sibling_or_parent",
                        target=candidate,
                    ))
                return candidate
            if not current:
                return None
            current = posixpath.dirname(current)
