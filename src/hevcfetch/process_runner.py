"""Async subprocess execution shared by every external tool wrapper.

All yt-dlp, ffprobe and ffmpeg invocations go through ``ProcessRunner`` so
components can be tested with a fake runner instead of real binaries.
"""

import asyncio
from collections.abc import Callable, Sequence
import codecs
import contextlib
from dataclasses import dataclass
import logging
import re

logger = logging.getLogger(__name__)

type LineHandler = Callable[[str], None]
type StartHandler = Callable[[asyncio.subprocess.Process], None]

_CHUNK_SIZE = 64 * 1024
# ffmpeg rewrites its status line with bare carriage returns.
_LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")


@dataclass(frozen=True, slots=True)
class ProcessResult:
    """Outcome of a finished subprocess.

    Attributes:
        returncode: Process exit status.
        stdout: Decoded standard output.
        stderr: Decoded standard error.
    """

    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        """Return True if the process exited with status 0."""
        return self.returncode == 0


def kill_process(process: asyncio.subprocess.Process) -> None:
    """Kill a process if it is still running."""
    if process.returncode is None:
        with contextlib.suppress(ProcessLookupError):
            process.kill()


async def _pump_lines(
    reader: asyncio.StreamReader | None,
    on_line: LineHandler | None,
    sink: list[str],
) -> None:
    """Read a pipe to EOF, buffering its text and emitting complete lines."""
    if reader is None:
        return
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    pending = ""

    def emit(line: str) -> None:
        if on_line is not None and line:
            on_line(line)

    while True:
        chunk = await reader.read(_CHUNK_SIZE)
        if not chunk:
            break
        text = decoder.decode(chunk)
        sink.append(text)
        *lines, pending = _LINE_BREAK_RE.split(pending + text)
        for line in lines:
            emit(line)

    tail = decoder.decode(b"", final=True)
    if tail:
        sink.append(tail)
    emit(pending + tail)


class ProcessRunner:
    """Launch external programs as asyncio subprocesses."""

    async def _spawn(self, cmd: Sequence[str]) -> asyncio.subprocess.Process:
        logger.debug("Launching subprocess.", extra={"cmd": list(cmd)})
        return await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )

    async def run(self, cmd: Sequence[str]) -> ProcessResult:
        """Run a command to completion and capture its output.

        Args:
            cmd: Executable followed by its arguments.

        Returns:
            The exit status and decoded output.

        Raises:
            FileNotFoundError: When the executable does not exist.
            OSError: When the subprocess cannot be started.
        """
        process = await self._spawn(cmd)
        try:
            stdout, stderr = await process.communicate()
        except asyncio.CancelledError:
            kill_process(process)
            raise

        return ProcessResult(
            returncode=process.returncode or 0,
            stdout=stdout.decode("utf-8", errors="replace") if stdout else "",
            stderr=stderr.decode("utf-8", errors="replace") if stderr else "",
        )

    async def stream(
        self,
        cmd: Sequence[str],
        on_stdout: LineHandler | None = None,
        on_stderr: LineHandler | None = None,
        on_start: StartHandler | None = None,
    ) -> ProcessResult:
        """Run a command while delivering its output line by line.

        Both pipes are drained concurrently. Carriage returns count as line
        breaks, so ffmpeg status updates arrive one per call.

        Args:
            cmd: Executable followed by its arguments.
            on_stdout: Called with each non-empty stdout line.
            on_stderr: Called with each non-empty stderr line.
            on_start: Called with the process handle once it is running.

        Returns:
            The exit status and the full decoded output of both pipes.

        Raises:
            FileNotFoundError: When the executable does not exist.
            OSError: When the subprocess cannot be started.
        """
        process = await self._spawn(cmd)
        if on_start is not None:
            on_start(process)

        stdout_parts: list[str] = []
        stderr_parts: list[str] = []
        try:
            await asyncio.gather(
                _pump_lines(process.stdout, on_stdout, stdout_parts),
                _pump_lines(process.stderr, on_stderr, stderr_parts),
            )
            returncode = await process.wait()
        except asyncio.CancelledError:
            kill_process(process)
            raise

        return ProcessResult(
            returncode=returncode or 0,
            stdout="".join(stdout_parts),
            stderr="".join(stderr_parts),
        )
