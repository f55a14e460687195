"""Run the external governance tool without truncating its output."""

from __future__ import annotations

import asyncio
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

logger = logging.getLogger(__name__)

API_KEY_ENV = "POSTMAN_API_KEY"
DEFAULT_TOOL_TIMEOUT_SECONDS = 600.0
DEFAULT_PROBE_TIMEOUT_SECONDS = 10.0
_OUTPUT_PREFIX = "postman-output-"


class ProcessFailure(RuntimeError):
    """The tool could not be spawned, timed out, or reported a fatal error."""


class ProcessTimeout(ProcessFailure):
    pass


@dataclass(frozen=True)
class ProcessOutput:
    output: str
    exit_code: int


@dataclass(frozen=True)
class CapturedOutput:
    success: bool
    stdout: str
    stderr: str
    exit_code: int | None


def _tool_env(api_key: str | None) -> dict[str, str]:
    env = dict(os.environ)
    if api_key:
        env[API_KEY_ENV] = api_key
    return env


def _remove_output_file(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        return
    except OSError as exc:
        logger.warning("Failed to clean up tool output file %s: %s", path, exc)


async def _kill(process: asyncio.subprocess.Process) -> None:
    try:
        process.kill()
    except ProcessLookupError:
        pass
    await process.wait()


async def run_tool(
    command: str,
    args: Sequence[str],
    *,
    api_key: str | None = None,
    timeout: float = DEFAULT_TOOL_TIMEOUT_SECONDS,
) -> ProcessOutput:
    """Run ``command args`` and return its combined stdout/stderr.

    Output goes to a private temporary file instead of a pipe so that very
    large reports are never cut short by pipe back-pressure. The credential
    travels in the environment only. The file is removed on every exit path;
    a failed removal is logged and otherwise ignored.
    """
    fd, raw_path = tempfile.mkstemp(prefix=_OUTPUT_PREFIX, suffix=".txt")
    output_path = Path(raw_path)
    try:
        with os.fdopen(fd, "wb") as sink:
            try:
                process = await asyncio.create_subprocess_exec(
                    command,
                    *args,
                    stdin=asyncio.subprocess.DEVNULL,
                    stdout=sink,
                    stderr=asyncio.subprocess.STDOUT,
                    env=_tool_env(api_key),
                )
            except OSError as exc:
                raise ProcessFailure(f"Failed to start {command}: {exc}") from exc
            try:
                exit_code = await asyncio.wait_for(process.wait(), timeout=timeout)
            except asyncio.TimeoutError:
                await _kill(process)
                raise ProcessTimeout(
                    f"Command timeout after {timeout:g} seconds: {command}"
                ) from None
            except BaseException:
                # Cancelled from outside; the child must not outlive the run.
                await _kill(process)
                raise
        try:
            output = output_path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            raise ProcessFailure(f"Failed to read output file: {exc}") from exc
    finally:
        _remove_output_file(output_path)
    logger.debug("%s exited with %s (%d chars)", command, exit_code, len(output))
    return ProcessOutput(output=output, exit_code=exit_code)


async def run_captured(
    command: str,
    args: Sequence[str],
    *,
    timeout: float = DEFAULT_PROBE_TIMEOUT_SECONDS,
) -> CapturedOutput:
    """Run a short probe command with piped output. Never raises."""
    try:
        process = await asyncio.create_subprocess_exec(
            command,
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        return CapturedOutput(success=False, stdout="", stderr=str(exc), exit_code=None)
    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        await _kill(process)
        return CapturedOutput(
            success=False, stdout="", stderr="Command timed out", exit_code=None
        )
    except BaseException:
        await _kill(process)
        raise
    return CapturedOutput(
        success=process.returncode == 0,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
        exit_code=process.returncode,
    )
