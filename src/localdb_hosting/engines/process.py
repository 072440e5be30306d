"""
localdb_hosting.engines.process

Subprocess helpers shared by the engine clients.

Responsibilities:
- Run a tool asynchronously, streaming its output line by line.
- Terminate the child process on timeout or task cancellation.
- Map "tool missing" and non-zero exits onto the host's error types.
"""

from __future__ import annotations

import asyncio
import subprocess
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from localdb_hosting.errors import CommandFailedError, ToolNotFoundError

OutputCallback = Callable[[str], None]


@dataclass(frozen=True, slots=True)
class CommandResult:
    argv: tuple[str, ...]
    exit_code: int
    output: str


async def run_command(
    argv: Sequence[str],
    *,
    timeout: float | None = None,
    on_output: OutputCallback | None = None,
    check: bool = True,
    kill_timeout: float = 5.0,
) -> CommandResult:
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
    except FileNotFoundError as e:
        raise ToolNotFoundError(argv[0]) from e

    lines: list[str] = []

    async def _pump() -> None:
        assert proc.stdout is not None
        async for raw in proc.stdout:
            line = raw.decode(errors="replace").rstrip("\r\n")
            lines.append(line)
            if on_output is not None and line:
                on_output(line)
        await proc.wait()

    try:
        await asyncio.wait_for(_pump(), timeout=timeout)
    except (TimeoutError, asyncio.CancelledError):
        await _terminate(proc, kill_timeout)
        raise

    result = CommandResult(argv=tuple(argv), exit_code=proc.returncode or 0, output="\n".join(lines))
    if check and result.exit_code != 0:
        raise CommandFailedError(argv, result.exit_code, result.output)
    return result


async def _terminate(proc: asyncio.subprocess.Process, kill_timeout: float) -> None:
    # SIGTERM first, SIGKILL if the tool ignores it.
    if proc.returncode is not None:
        return
    try:
        proc.terminate()
        try:
            await asyncio.wait_for(proc.wait(), timeout=kill_timeout)
        except TimeoutError:
            proc.kill()
            await proc.wait()
    except ProcessLookupError:
        pass


def run_command_sync(argv: Sequence[str], *, timeout: float | None = None) -> CommandResult:
    """
    Blocking variant for registration-time work that runs before the event loop.
    """

    try:
        completed = subprocess.run(
            list(argv),
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            timeout=timeout,
            check=False,
        )
    except FileNotFoundError as e:
        raise ToolNotFoundError(argv[0]) from e

    output = completed.stdout.decode(errors="replace")
    if completed.returncode != 0:
        raise CommandFailedError(argv, completed.returncode, output)
    return CommandResult(argv=tuple(argv), exit_code=0, output=output)


# --- Module Notes -----------------------------------------------------------
# stderr is merged into stdout so engine messages keep their original ordering
# when forwarded to resource loggers.
