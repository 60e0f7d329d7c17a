"""Thin async wrapper around ffprobe for media probing.

Only the container duration is needed: it decides whether a short source
must be looped before encoding.
"""

import json
import logging
from pathlib import Path
from typing import Any

from .exceptions import DurationProbeFailedError, FFProbeError
from .process_runner import ProcessRunner

logger = logging.getLogger(__name__)


class FFProbe:
    """Run ffprobe commands to gather media metadata.

    Attributes:
        _executable: ffprobe binary name or path.
        _runner: Subprocess runner.
    """

    def __init__(
        self, executable: str = "ffprobe", runner: ProcessRunner | None = None
    ):
        self._executable = executable
        self._runner = runner or ProcessRunner()

    async def _run(self, *args: str) -> tuple[int, str, str]:
        """Execute ffprobe with the given arguments.

        Returns:
            Tuple of (returncode, stdout, stderr).

        Raises:
            FFProbeError: When ffprobe is missing or cannot be executed.
        """
        try:
            result = await self._runner.run([self._executable, *args])
        except FileNotFoundError as e:
            raise FFProbeError(f"{self._executable} executable not found") from e
        except OSError as e:
            raise FFProbeError(f"Failed to execute {self._executable}") from e
        return result.returncode, result.stdout, result.stderr

    async def get_duration_seconds(self, file_path: Path) -> float:
        """Return the container duration of a local media file.

        Args:
            file_path: File to probe.

        Returns:
            Duration in seconds.

        Raises:
            DurationProbeFailedError: When ffprobe fails or reports no usable
                duration.
        """
        try:
            rc, stdout, stderr = await self._run(
                "-v",
                "quiet",
                "-print_format",
                "json",
                "-show_format",
                str(file_path),
            )
        except FFProbeError as e:
            raise DurationProbeFailedError(
                "Could not run duration probe", stderr=e.stderr
            ) from e

        if rc != 0:
            raise DurationProbeFailedError(
                f"ffprobe exited with code {rc}", stderr=stderr or None
            )

        try:
            data: dict[str, Any] = json.loads(stdout)
        except json.JSONDecodeError as e:
            raise DurationProbeFailedError(
                "Failed to parse ffprobe JSON output", stderr=stdout
            ) from e

        fmt = data.get("format") if isinstance(data, dict) else None
        raw_duration = fmt.get("duration") if isinstance(fmt, dict) else None
        if raw_duration is None:
            raise DurationProbeFailedError(
                "ffprobe output carries no format duration", stderr=stdout
            )

        try:
            duration = float(raw_duration)
        except (TypeError, ValueError) as e:
            raise DurationProbeFailedError(
                f"Unparsable duration value: {raw_duration!r}", stderr=stdout
            ) from e

        logger.debug(
            "Probed media duration.",
            extra={"file_path": str(file_path), "duration_seconds": duration},
        )
        return duration
