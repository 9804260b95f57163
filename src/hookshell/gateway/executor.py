"""Shell command execution bound to the lifetime of a request.

Each command runs as ``<shell> -c <script>`` in its own process group so
that a timeout or a vanished client can kill the shell together with
everything it started.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import signal
import time
from collections.abc import Awaitable, Callable

from hookshell.domain.models import ExecutionOutcome, OutcomeKind

logger = logging.getLogger(__name__)

DisconnectProbe = Callable[[], Awaitable[bool]]

DEFAULT_POLL_INTERVAL = 0.25


class CommandExecutor:
    """Runs finalized commands and captures their output.

    Args:
        shell: Shell binary used to interpret the command.
        timeout: Seconds before the command is killed, None for no limit.
        combine_output: Merge stderr into stdout.
        max_concurrency: Upper bound on simultaneously running commands,
            0 for unbounded.
        poll_interval: How often to check for a disconnected client.
    """

    def __init__(
        self,
        shell: str = "bash",
        timeout: float | None = None,
        combine_output: bool = False,
        max_concurrency: int = 0,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        self._shell = shell
        self._timeout = timeout
        self._combine_output = combine_output
        self._poll_interval = poll_interval
        self._semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency > 0 else None

    async def execute(
        self,
        command: str,
        stdin: bytes | None = None,
        is_disconnected: DisconnectProbe | None = None,
        path: str = "",
    ) -> ExecutionOutcome:
        """Run ``command`` and return how it went.

        The timeout clock starts before waiting for a concurrency slot, so
        time spent queued counts against it.

        Args:
            command: Fully substituted shell script.
            stdin: Bytes written to the process's standard input; None
                closes stdin immediately.
            is_disconnected: Async callable returning True once the
                client has gone away.
            path: Request path, for logging only.
        """
        started = time.monotonic()
        if self._semaphore is None:
            outcome = await self._run(command, stdin, is_disconnected, started)
        else:
            async with self._semaphore:
                outcome = await self._run(command, stdin, is_disconnected, started)

        logger.info(
            "execution path=%s kind=%s exit=%s duration=%.3fs",
            path, outcome.kind.value, outcome.exit_code, outcome.duration,
        )
        logger.debug("execution path=%s stdout=%r stderr=%r", path, outcome.stdout, outcome.stderr)
        return outcome

    async def _run(
        self,
        command: str,
        stdin: bytes | None,
        is_disconnected: DisconnectProbe | None,
        started: float,
    ) -> ExecutionOutcome:
        # Requests that expired or lost their client while queued never spawn.
        if self._timeout and time.monotonic() - started >= self._timeout:
            return self._aborted(OutcomeKind.TIMEOUT, started)
        if is_disconnected is not None and await is_disconnected():
            return self._aborted(OutcomeKind.CANCELLED, started)

        try:
            proc = await asyncio.create_subprocess_exec(
                self._shell, "-c", command,
                stdin=asyncio.subprocess.PIPE if stdin is not None else asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT if self._combine_output else asyncio.subprocess.PIPE,
                start_new_session=True,
            )
        except OSError as e:
            logger.error("Could not start %s: %s", self._shell, e)
            return ExecutionOutcome(
                kind=OutcomeKind.SPAWN_FAILED,
                stderr=f"{self._shell}: {e}\n",
                combined=self._combine_output,
                message=f"failed to start {self._shell}",
                duration=time.monotonic() - started,
            )

        communicate = asyncio.ensure_future(proc.communicate(stdin))
        try:
            aborted = await self._supervise(communicate, started, is_disconnected)
        except asyncio.CancelledError:
            await _kill(proc)
            communicate.cancel()
            raise

        if aborted is not None:
            await _kill(proc)
            communicate.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await communicate
            outcome = self._aborted(aborted, started, proc.returncode)
            logger.warning("%s (pid=%d)", outcome.message, proc.pid)
            return outcome

        stdout, stderr = communicate.result()
        exit_code = proc.returncode
        ok = exit_code == 0
        return ExecutionOutcome(
            kind=OutcomeKind.SUCCESS if ok else OutcomeKind.COMMAND_FAILED,
            exit_code=exit_code,
            stdout=_decode(stdout),
            stderr=_decode(stderr),
            combined=self._combine_output,
            message="" if ok else f"exit status {exit_code}",
            duration=time.monotonic() - started,
        )

    async def _supervise(
        self,
        task: asyncio.Future,
        started: float,
        is_disconnected: DisconnectProbe | None,
    ) -> OutcomeKind | None:
        """Wait for ``task``; return the abort reason if it must be killed."""
        deadline = started + self._timeout if self._timeout else None
        while True:
            wait: float | None = self._poll_interval if is_disconnected is not None else None
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return OutcomeKind.TIMEOUT
                wait = remaining if wait is None else min(wait, remaining)
            done, _ = await asyncio.wait({task}, timeout=wait)
            if done:
                return None
            if is_disconnected is not None and await is_disconnected():
                return OutcomeKind.CANCELLED

    def _aborted(
        self,
        kind: OutcomeKind,
        started: float,
        exit_code: int | None = None,
    ) -> ExecutionOutcome:
        if kind is OutcomeKind.TIMEOUT:
            message = f"command timed out after {self._timeout}s"
        elif exit_code is None:
            message = "client disconnected before the command started"
        else:
            message = "client disconnected, command killed"
        return ExecutionOutcome(
            kind=kind,
            exit_code=exit_code,
            combined=self._combine_output,
            message=message,
            duration=time.monotonic() - started,
        )


async def _kill(proc: asyncio.subprocess.Process) -> None:
    """Kill the process group led by ``proc`` and reap the leader.

    Background children may outlive the shell and keep its pipes open, so
    the group is signalled even when the leader has already exited.
    """
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass
    except OSError:
        if proc.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                proc.kill()
    await proc.wait()


def _decode(data: bytes | None) -> str:
    if not data:
        return ""
    return data.decode("utf-8", errors="replace")
