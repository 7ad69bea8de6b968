"""Private per-request cache roots for toolchain runs."""

from __future__ import annotations

import asyncio
import hashlib
import logging
import os
import shutil
import uuid

logger = logging.getLogger(__name__)


class PrivateCache:
    """Hands out cache directories that no two requests share.

    The toolchain config artifact and package cache for a request live under
    ``<cache_dir>/<manager>/<key>``, where ``key`` hashes the manifest path
    together with a random nonce. Directory creation and removal run in
    worker threads; a released package cache can be large.
    """

    def __init__(self, cache_dir: str, keep: bool = False):
        self.cache_dir = os.path.abspath(cache_dir)
        self.keep = keep

    def _create(self, manager: str, package_file_name: str) -> str:
        nonce = uuid.uuid4().hex
        key = hashlib.sha256(f"{package_file_name}\0{nonce}".encode("utf-8")).hexdigest()[:16]
        path = os.path.join(self.cache_dir, manager, key)
        os.makedirs(path, exist_ok=False)
        return path

    def _remove(self, path: str) -> None:
        try:
            shutil.rmtree(path)
        except OSError as e:
            logger.debug("Failed to remove cache dir %s: %s", path, e)

    async def request_dir(self, manager: str, package_file_name: str) -> str:
        path = await asyncio.to_thread(self._create, manager, package_file_name)
        logger.debug("Using private cache dir %s for %s", path, package_file_name)
        return path

    async def release(self, path: str) -> None:
        """Remove a request directory unless the cache is configured to be kept."""
        if self.keep:
            return
        await asyncio.to_thread(self._remove, path)
