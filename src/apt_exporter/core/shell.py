"""Asynchronous shell command execution with timeout."""

from __future__ import annotations

import asyncio
import os
import time
from typing import Optional

from apt_exporter.core.errors import AptCommandError, AptTimeoutError
from apt_exporter.core.logging import get_logger

log = get_logger(__name__)

ENV_OVERRIDES = {
    "LANG": "C",
    "LC_ALL": "C",
}


def command_env() -> dict[str, str]:
    """Environment for external commands, with a stable locale."""
    env = os.environ.copy()
    env.update(ENV_OVERRIDES)

    return env


async def _reap(process: asyncio.subprocess.Process) -> None:
    try:
        process.kill()
    except ProcessLookupError:
        pass
    await process.wait()


async def run_capture(
    *cmd: str, timeout: Optional[float] = 30
) -> tuple[bytes, bytes, int]:
    """Run a command asynchronously with optional timeout.

    Args:
        *cmd: Command and its arguments to run.
        timeout: Timeout in seconds.

    Returns:
        A tuple of (stdout, stderr, returncode).

    Raises:
        AptCommandError: If the command cannot be started.
        AptTimeoutError: If the command times out.
    """
    start = time.perf_counter()
    command = " ".join(cmd)
    log.debug("command_start", command=command, timeout=timeout)

    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=command_env(),
        )
    except OSError as e:
        raise AptCommandError(
            f"Cannot execute {cmd[0]}",
            command=command,
            error=str(e),
        ) from e

    try:
        out, err = await asyncio.wait_for(process.communicate(), timeout)
        duration_ms = int((time.perf_counter() - start) * 1000)
        log.debug(
            "command_complete",
            command=command,
            returncode=process.returncode,
            duration_ms=duration_ms
        )

    except asyncio.TimeoutError as e:
        duration_ms = int((time.perf_counter() - start) * 1000)
        log.error(
            "command_timeout",
            command=command,
            timeout=timeout,
            duration_ms=duration_ms
        )
        await _reap(process)
        raise AptTimeoutError(
            command=command,
            timeout=timeout,
            context={"duration_ms": duration_ms}
        ) from e
    except asyncio.CancelledError:
        await _reap(process)
        raise

    return out, err, process.returncode


async def run_output(*cmd: str, timeout: Optional[float] = 30) -> bytes:
    """Run a command and return its stdout, failing on non-zero exit.

    Args:
        *cmd: Command and its arguments to run.
        timeout: Timeout in seconds.

    Returns:
        The raw stdout of the command.

    Raises:
        AptCommandError: If the command fails.
        AptTimeoutError: If the command times out.
    """
    out, err, code = await run_capture(*cmd, timeout=timeout)

    if code != 0:
        raise AptCommandError(
            command=" ".join(cmd),
            returncode=code,
            error=err.decode("utf-8", errors="replace").strip(),
        )

    return out
