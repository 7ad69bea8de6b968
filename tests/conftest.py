"""Shared fixtures for relock tests."""

import os

import pytest

from common.cache import PrivateCache
from common.fs import LocalFileStore


class RecordingExecutor:
    """Executor double that records command sequences.

    ``on_run`` is called with (cmds, options) and may write files or raise.
    """

    def __init__(self, on_run=None):
        self.calls = []
        self.on_run = on_run

    async def run(self, cmds, options):
        self.calls.append((cmds, options))
        if self.on_run is not None:
            self.on_run(cmds, options)


def write_file(root, name, content):
    path = os.path.join(str(root), name)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(content)
    return path


def read_file(root, name):
    with open(os.path.join(str(root), name), encoding="utf-8", newline="") as f:
        return f.read()


@pytest.fixture
def workspace(tmp_path):
    root = tmp_path / "repo"
    root.mkdir()
    return root


@pytest.fixture
def files(workspace):
    return LocalFileStore(str(workspace))


@pytest.fixture
def cache(tmp_path):
    return PrivateCache(str(tmp_path / "cache"))
