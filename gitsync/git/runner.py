"""Async git command runner with timeout and cancellation handling."""

from __future__ import annotations

import asyncio
import dataclasses
import os
import shutil
import typing as typ

from gitsync.logging import get_logger, log_debug

from .errors import GitCommandError

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from pathlib import Path

logger = get_logger(__name__)

DEFAULT_TIMEOUT_S = 300.0

# No terminal prompts, no host credential helpers, no hooks from the clone.
# A fixed locale keeps stderr stable for error messages.
_BASE_ENV = {
    "GIT_TERMINAL_PROMPT": "0",
    "GIT_CONFIG_NOSYSTEM": "1",
    "GIT_CONFIG_COUNT": "2",
    "GIT_CONFIG_KEY_0": "credential.helper",
    "GIT_CONFIG_VALUE_0": "",
    "GIT_CONFIG_KEY_1": "core.hooksPath",
    "GIT_CONFIG_VALUE_1": os.devnull,
    "LC_ALL": "C",
}


@dataclasses.dataclass(frozen=True, slots=True)
class GitResult:
    """Captured output of a successful git command."""

    returncode: int
    stdout: str
    stderr: str


def git_environment(extra: cabc.Mapping[str, str] | None = None) -> dict[str, str]:
    """Return the process environment for git children."""
    env = dict(os.environ)
    env.update(_BASE_ENV)
    if extra:
        env.update(extra)
    return env


async def _kill(process: asyncio.subprocess.Process) -> None:
    if process.returncode is None:
        try:
            process.kill()
        except ProcessLookupError:
            return
        await process.wait()


async def run_git(
    args: cabc.Sequence[str],
    *,
    cwd: Path,
    env: cabc.Mapping[str, str],
    timeout_s: float = DEFAULT_TIMEOUT_S,
) -> GitResult:
    """Run ``git <args>`` in ``cwd`` and return its output.

    The child is killed if the timeout expires or the awaiting task is
    cancelled; cancellation is re-raised unchanged.

    Raises
    ------
    GitCommandError
        If git is missing, the command exits non-zero, or it times out.

    """
    executable = shutil.which("git")
    if executable is None:
        raise GitCommandError.git_missing()

    command = args[0] if args else ""
    log_debug(logger, "Running git %s in %s", " ".join(args), cwd)
    process = await asyncio.create_subprocess_exec(
        executable,
        *args,
        cwd=cwd,
        env=dict(env),
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        async with asyncio.timeout(timeout_s):
            stdout, stderr = await process.communicate()
    except TimeoutError as exc:
        await _kill(process)
        raise GitCommandError.timed_out(command, timeout_s) from exc
    except asyncio.CancelledError:
        await _kill(process)
        raise

    stdout_text = stdout.decode("utf-8", errors="replace")
    stderr_text = stderr.decode("utf-8", errors="replace")
    returncode = typ.cast("int", process.returncode)
    if returncode != 0:
        raise GitCommandError.failed(command, returncode, stderr_text)
    return GitResult(returncode=returncode, stdout=stdout_text, stderr=stderr_text)
