"""Exception types raised by the artifact pipeline."""

from __future__ import annotations

from typing import List, Optional

from constants import Constants


class RelockError(Exception):
    """Base class for relock errors."""


class TemporaryError(RelockError):
    """Infrastructure problem; the caller should retry later."""

    def __init__(self, reason: Optional[str] = None):
        super().__init__(Constants.TEMPORARY_ERROR)
        self.reason = reason


class ExecError(RelockError):
    """A toolchain command exited unsuccessfully."""

    def __init__(
        self,
        cmd: List[str],
        returncode: Optional[int],
        stdout: str = "",
        stderr: str = "",
        message: Optional[str] = None,
    ):
        super().__init__(message or f"Command failed: {' '.join(cmd)}")
        self.cmd = cmd
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


class LockFileMissingError(RelockError):
    """A lock file that existed before the toolchain ran is gone afterwards."""

    def __init__(self, lock_file_name: str):
        super().__init__(f"Lock file {lock_file_name} was removed by the toolchain")
        self.lock_file_name = lock_file_name


def is_temporary_error(err: BaseException) -> bool:
    """Return True for failures that must propagate to the retry layer."""
    return isinstance(err, TemporaryError) or str(err) == Constants.TEMPORARY_ERROR
