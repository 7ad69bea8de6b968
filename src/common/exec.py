"""Execution of toolchain command sequences.

Commands are argv lists run one after another; the first failure stops the
sequence. Containerised execution is out of scope: ``LocalExecutor`` runs the
binaries found on PATH and only records the requested tool constraints.
"""

from __future__ import annotations

import asyncio
import logging
import os
import posixpath
import shlex
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from common.errors import ExecError, TemporaryError
from common.logging_utils import Timer, extra_context, is_debug_enabled
from constants import Constants

logger = logging.getLogger(__name__)


@dataclass
class ToolConstraint:
    """Required toolchain version, e.g. ``dotnet`` ``8.0.100``."""

    tool_name: str
    constraint: Optional[str] = None


@dataclass
class ExecOptions:
    """Execution environment for one command sequence."""

    extra_env: Dict[str, str] = field(default_factory=dict)
    tool_constraints: List[ToolConstraint] = field(default_factory=list)
    cwd_file: Optional[str] = None
    isolated: bool = True
    timeout: Optional[float] = None


@dataclass
class ExecResult:
    """Combined output of a command sequence."""

    stdout: str = ""
    stderr: str = ""


def build_env(options: ExecOptions, expose_all_env: bool = False) -> Dict[str, str]:
    """Build the child environment.

    Isolated runs only inherit ``Constants.BASIC_ENV_VARS`` unless
    ``expose_all_env`` is set; ``extra_env`` always wins.
    """
    if options.isolated and not expose_all_env:
        env = {
            name: os.environ[name] for name in Constants.BASIC_ENV_VARS if name in os.environ
        }
    else:
        env = dict(os.environ)
    env.update({k: v for k, v in options.extra_env.items() if v is not None})
    return env


class LocalExecutor:
    """Runs command sequences as local subprocesses inside a workspace."""

    def __init__(self, local_dir: str, expose_all_env: bool = False,
                 default_timeout: Optional[float] = Constants.EXEC_TIMEOUT_SEC):
        self.local_dir = os.path.abspath(local_dir)
        self.expose_all_env = expose_all_env
        self.default_timeout = default_timeout

    def _cwd(self, options: ExecOptions) -> str:
        if options.cwd_file:
            return os.path.join(self.local_dir, posixpath.dirname(options.cwd_file))
        return self.local_dir

    async def run(self, cmds: List[List[str]], options: ExecOptions) -> ExecResult:
        """Execute ``cmds`` strictly in order.

        Raises:
            TemporaryError: A binary could not be started.
            ExecError: A command exited non-zero or timed out.
        """
        env = build_env(options, self.expose_all_env)
        cwd = self._cwd(options)
        timeout = options.timeout if options.timeout is not None else self.default_timeout
        for constraint in options.tool_constraints:
            if constraint.constraint:
                logger.debug("Tool constraint %s=%s", constraint.tool_name, constraint.constraint)

        result = ExecResult()
        for cmd in cmds:
            stdout, stderr = await self._run_one(cmd, cwd, env, timeout)
            result.stdout += stdout
            result.stderr += stderr
        return result

    async def _run_one(self, cmd: List[str], cwd: str, env: Dict[str, str],
                       timeout: Optional[float]) -> tuple[str, str]:
        cmd_text = shlex.join(cmd)
        with Timer() as t:
            try:
                proc = await asyncio.create_subprocess_exec(
                    *cmd,
                    cwd=cwd,
                    env=env,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                )
            except (FileNotFoundError, PermissionError) as e:
                logger.warning("Unable to start %s: %s", cmd[0], e)
                raise TemporaryError(str(e)) from e

            try:
                out, err = await asyncio.wait_for(proc.communicate(), timeout=timeout)
            except asyncio.TimeoutError as e:
                proc.kill()
                await proc.wait()
                raise ExecError(
                    cmd, None,
                    message=f"Command timed out after {timeout} seconds: {cmd_text}",
                ) from e

        stdout = out.decode("utf-8", errors="replace")
        stderr = err.decode("utf-8", errors="replace")
        if is_debug_enabled(logger):
            logger.debug("Command finished", extra=extra_context(
                event="exec", component="exec", action="run", target=cmd_text,
                returncode=proc.returncode, duration_ms=t.duration_ms(),
            ))
        if proc.returncode != 0:
            raise ExecError(cmd, proc.returncode, stdout, stderr)
        return stdout, stderr
