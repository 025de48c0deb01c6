"""ProcessSupervisor: launches and tears down the MCP server process.

The server is started with stdin, stdout and stderr as three separate pipes.
Its environment is the host environment with ``PATH`` widened to the usual
system bin directories and ``HOME`` pinned to the current user's home, since
the server's CLI reads its auth and config from there.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Mapping, Sequence
from pathlib import Path

from mcplink.errors import ProcessExitedError, SpawnError
from mcplink.mcp.profile import read_profile_auth
from mcplink.mcp.resolver import SYSTEM_BIN_DIRS, resolve_command_path
from mcplink.mcp.stderr import STDERR_TAIL_LINES, StderrMonitor

logger = logging.getLogger(__name__)

ACCESS_TYPE_FLAG = "--access-type"
ACCESS_ID_FLAG = "--access-id"

STARTUP_GRACE_PERIOD = 0.5
TERMINATE_TIMEOUT = 3.0
EXIT_POLL_INTERVAL = 0.1

# asyncio's default 64 KiB line limit is too small for large tool results.
STDOUT_LINE_LIMIT = 16 * 1024 * 1024


def split_args(args: str | Sequence[str] | None) -> list[str]:
    """Whitespace-split a string of arguments; sequences are copied as-is."""
    if args is None:
        return []
    if isinstance(args, str):
        return args.split()
    return [str(a) for a in args]


def has_auth_flags(argv: Sequence[str]) -> bool:
    """True when *argv* already carries an access-type or access-id flag."""
    for token in argv:
        for flag in (ACCESS_TYPE_FLAG, ACCESS_ID_FLAG):
            if token == flag or token.startswith(flag + "="):
                return True
    return False


def build_command(
    command: str,
    args: str | Sequence[str] | None = None,
    *,
    auto_inject_auth: bool = True,
    profile_path: Path | None = None,
) -> list[str]:
    """Build the argv: resolved command, split args, then profile auth flags.

    Auth flags are appended only when the caller passed none and the profile
    yields both values.
    """
    argv = [resolve_command_path(command), *split_args(args)]
    if auto_inject_auth and not has_auth_flags(argv[1:]):
        profile = read_profile_auth(profile_path)
        if profile is not None:
            logger.info(
                "Auto-injecting auth from default profile: access_type=%s, access_id=%s",
                profile.access_type,
                profile.access_id,
            )
            argv += [ACCESS_TYPE_FLAG, profile.access_type, ACCESS_ID_FLAG, profile.access_id]
    return argv


def build_environment(base: Mapping[str, str] | None = None) -> dict[str, str]:
    """Copy *base* (default: the host environment), widen PATH and set HOME."""
    env = dict(os.environ if base is None else base)

    current = env.get("PATH", "")
    present = {p for p in current.split(os.pathsep) if p}
    additions = [d for d in SYSTEM_BIN_DIRS if d not in present]
    if additions:
        env["PATH"] = os.pathsep.join([*additions, current]).rstrip(os.pathsep)

    env["HOME"] = str(Path.home())
    return env


async def wait_for_exit(
    process: asyncio.subprocess.Process,
    *,
    poll_interval: float = EXIT_POLL_INTERVAL,
) -> int:
    """Wait until *process* has exited and return its exit code.

    Polls ``returncode``: ``Process.wait()`` does not return while a
    descendant of the server still holds its stdio pipes open.
    """
    while process.returncode is None:
        await asyncio.sleep(poll_interval)
    return process.returncode


async def read_stderr_lines(stream: asyncio.StreamReader | None, limit: int = STDERR_TAIL_LINES) -> str:
    """Read up to *limit* lines from a finished process's stderr."""
    if stream is None:
        return ""
    lines: list[str] = []
    try:
        while len(lines) < limit:
            raw = await asyncio.wait_for(stream.readline(), 1.0)
            if not raw:
                break
            lines.append(raw.decode(errors="replace").rstrip())
    except (TimeoutError, OSError, ValueError) as exc:
        logger.debug("Stopped reading stderr: %s", exc)
    return "\n".join(lines).strip()


class ProcessSupervisor:
    """Owns one server process and its :class:`StderrMonitor`."""

    def __init__(self, *, grace_period: float = STARTUP_GRACE_PERIOD) -> None:
        self._grace_period = grace_period
        self.process: asyncio.subprocess.Process | None = None
        self.monitor: StderrMonitor | None = None

    @property
    def alive(self) -> bool:
        return self.process is not None and self.process.returncode is None

    async def start(
        self,
        argv: Sequence[str],
        *,
        working_directory: str | None = None,
        env: Mapping[str, str] | None = None,
    ) -> asyncio.subprocess.Process:
        """Spawn *argv* and wait out the grace period.

        Raises:
            SpawnError: The OS could not start the executable.
            ProcessExitedError: The process exited during the grace period.
        """
        environment = dict(env) if env is not None else build_environment()
        logger.info("Starting MCP server: %s", " ".join(argv))
        logger.debug(
            "Server environment: PATH=%s, HOME=%s, DISPLAY=%s",
            environment.get("PATH"),
            environment.get("HOME"),
            environment.get("DISPLAY"),
        )

        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=working_directory or None,
                env=environment,
                limit=STDOUT_LINE_LIMIT,
            )
        except OSError as exc:
            raise SpawnError(argv[0], exc.strerror or str(exc)) from exc
        self.process = proc

        await asyncio.sleep(self._grace_period)

        if proc.returncode is not None:
            logger.error("MCP server process died immediately after start")
            stderr = await read_stderr_lines(proc.stderr)
            logger.error("Process exit code: %s, stderr: %s", proc.returncode, stderr)
            if proc.stdin is not None:
                proc.stdin.close()
            self.process = None
            raise ProcessExitedError(proc.returncode, stderr)

        if proc.stderr is not None:
            self.monitor = StderrMonitor(proc.stderr)
            self.monitor.start()
        return proc

    async def stderr_tail(self) -> str:
        """Recent stderr, giving the monitor a moment to catch up."""
        if self.monitor is not None:
            return await self.monitor.drain()
        if self.process is not None and self.process.returncode is not None:
            return await read_stderr_lines(self.process.stderr)
        return ""

    async def terminate(self) -> None:
        """Stop the process (SIGTERM, then SIGKILL) and the monitor. Idempotent."""
        proc, self.process = self.process, None
        monitor, self.monitor = self.monitor, None

        if proc is not None:
            if proc.stdin is not None and not proc.stdin.is_closing():
                proc.stdin.close()
            if proc.returncode is None:
                try:
                    proc.terminate()
                except ProcessLookupError:
                    pass
                try:
                    await asyncio.wait_for(wait_for_exit(proc), TERMINATE_TIMEOUT)
                except TimeoutError:
                    logger.warning("MCP server did not exit after SIGTERM; killing")
                    try:
                        proc.kill()
                    except ProcessLookupError:
                        pass
                    await wait_for_exit(proc)
            logger.info("MCP server stopped (exit code %s)", proc.returncode)

        if monitor is not None:
            await monitor.stop()
