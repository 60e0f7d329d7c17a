"""HEVC transcode stage: turn a source file into the compliant deliverable.

Stages, in order:

1. Reuse an existing compliant output, if one is already on disk.
2. Loop sources shorter than the minimum duration into a temporary copy.
3. Encode, climbing the hardware/software/AAC fallback ladder on failure.
4. Verify the output and fix its permissions.
5. Remove the temporary copy and, when safe, the original source.
"""

from collections.abc import Callable
import logging
from pathlib import Path
import time

from .config.preferences import ConversionSettings
from .exceptions import (
    CleanupSkippedError,
    EncodeExhaustedError,
    ExtensionFailedError,
    FileOperationError,
    OutputVerificationFailedError,
)
from .ffmpeg import FFmpeg
from .ffprobe import FFProbe
from .file_manager import FileManager
from .path_manager import PathManager
from .progress import (
    Stopwatch,
    estimate_eta,
    parse_encode_duration,
    parse_encode_progress,
)
from .types.conversion_attempt import ConversionAttempt
from .types.media_files import CompliantOutputFile, SourceMediaFile
from .utils.formatting import format_file_size, format_time, render_progress_bar

logger = logging.getLogger(__name__)

# Progress is logged once per this many percentage points.
_PROGRESS_LOG_STEP = 10
# Number of stderr lines logged when an attempt fails.
_STDERR_HEAD_LINES = 10


class _EncodeProgressLogger:
    """Track one encode attempt's stderr and log coarse progress."""

    def __init__(self, attempt: ConversionAttempt, clock: Callable[[], float]):
        self._attempt = attempt
        self._stopwatch = Stopwatch(clock=clock)
        self._duration: float | None = None
        self._last_bucket = -1

    def on_line(self, line: str) -> None:
        if self._duration is None:
            duration = parse_encode_duration(line)
            if duration is not None:
                self._duration = duration
                return

        progress = parse_encode_progress(line)
        if progress is None:
            return
        percentage = progress.percentage_of(self._duration)
        if percentage is None:
            return
        bucket = int(percentage // _PROGRESS_LOG_STEP)
        if bucket <= self._last_bucket:
            return
        self._last_bucket = bucket
        elapsed = self._stopwatch.elapsed()
        logger.info(
            f"Encoding {render_progress_bar(percentage)}",
            extra={
                "attempt": self._attempt.number,
                "elapsed": format_time(elapsed),
                "eta": format_time(estimate_eta(elapsed, percentage)),
                "speed": progress.speed,
            },
        )


class TranscodeEngine:
    """Convert a source media file to the fixed HEVC profile.

    Attributes:
        _ffmpeg: ffmpeg wrapper.
        _ffprobe: ffprobe wrapper.
        _file_manager: Filesystem helper.
        _paths: Path derivation helper.
        _settings: Target profile and ladder limits.
        _source_ext: Extension of sources this engine may delete after conversion.
        _clock: Time source for progress estimates.
    """

    def __init__(
        self,
        ffmpeg: FFmpeg,
        ffprobe: FFProbe,
        file_manager: FileManager,
        paths: PathManager,
        settings: ConversionSettings,
        source_ext: str = "mp4",
        clock: Callable[[], float] | None = None,
    ):
        self._ffmpeg = ffmpeg
        self._ffprobe = ffprobe
        self._file_manager = file_manager
        self._paths = paths
        self._settings = settings
        self._source_ext = source_ext.lstrip(".").lower()
        self._clock = clock or time.monotonic

    async def existing_output(self, source_path: Path) -> CompliantOutputFile | None:
        """Return the compliant output for ``source_path`` if it is already on disk."""
        output_path = self._paths.compliant_path_for(source_path)
        if not await self._file_manager.file_exists(output_path):
            return None
        size = await self._file_manager.file_size(output_path)
        return CompliantOutputFile(path=output_path, size_bytes=size, reused=True)

    async def ensure_min_duration(self, source_path: Path) -> Path:
        """Return a file at least ``min_duration_seconds`` long.

        Short sources are looped into a temporary ``.extended`` copy; others
        are returned unchanged.

        Raises:
            DurationProbeFailedError: If the source duration cannot be read.
            ExtensionFailedError: If looping fails or produces no file.
        """
        duration = await self._ffprobe.get_duration_seconds(source_path)
        minimum = self._settings.min_duration_seconds
        if duration >= minimum:
            return source_path

        extended_path = self._paths.extended_path_for(source_path)
        logger.info(
            "Source is shorter than the minimum duration; looping it.",
            extra={
                "file_path": str(source_path),
                "duration_seconds": duration,
                "min_duration_seconds": minimum,
            },
        )
        await self._ffmpeg.loop_to_duration(source_path, extended_path, minimum)
        if not await self._file_manager.file_exists(extended_path):
            raise ExtensionFailedError(
                "Looping reported success but produced no file",
                stderr=None,
            )
        return extended_path

    async def encode(
        self,
        input_path: Path,
        output_path: Path,
        start: ConversionAttempt | None = None,
    ) -> CompliantOutputFile:
        """Encode ``input_path`` to HEVC, walking the fallback ladder on failure.

        Args:
            input_path: File to encode.
            output_path: Destination of the compliant output.
            start: Ladder state for the first attempt.

        Returns:
            The verified output file.

        Raises:
            EncodeExhaustedError: If every allowed attempt failed.
            OutputVerificationFailedError: If ffmpeg succeeded without output.
            FFmpegError: If ffmpeg cannot be started at all.
        """
        attempt = start or ConversionAttempt()
        max_attempts = self._settings.max_attempts

        while True:
            logger.info(
                "Starting HEVC encode.",
                extra={
                    "attempt": attempt.number,
                    "max_attempts": max_attempts,
                    "rung": attempt.rung,
                    "input_path": str(input_path),
                },
            )
            progress_logger = _EncodeProgressLogger(attempt, self._clock)
            result = await self._ffmpeg.encode_hevc(
                input_path, output_path, attempt, progress_logger.on_line
            )
            if result.ok:
                return await self._verify_output(output_path)

            logger.warning(
                "HEVC encode attempt failed.",
                extra={
                    "attempt": attempt.number,
                    "rung": attempt.rung,
                    "exit_code": result.returncode,
                    "stderr_head": result.stderr.splitlines()[:_STDERR_HEAD_LINES],
                },
            )
            if attempt.is_last(max_attempts):
                raise EncodeExhaustedError(
                    attempts=attempt.number,
                    exit_code=result.returncode,
                    diagnostics=result.stderr,
                )
            attempt = attempt.after_failure()

    async def _verify_output(self, output_path: Path) -> CompliantOutputFile:
        if not await self._file_manager.file_exists(output_path):
            raise OutputVerificationFailedError(
                "ffmpeg reported success but the output file is missing",
                path=str(output_path),
            )
        size = await self._file_manager.file_size(output_path)
        logger.info(
            "HEVC encode completed.",
            extra={"file_path": str(output_path), "size": format_file_size(size)},
        )
        await self._file_manager.fix_permissions(output_path)
        return CompliantOutputFile(path=output_path, size_bytes=size)

    async def _remove_temporary(self, path: Path) -> None:
        try:
            await self._file_manager.delete_file(path)
        except (PermissionError, FileOperationError) as e:
            logger.warning(
                "Failed to delete temporary extended file.",
                extra={"file_path": str(path)},
                exc_info=e,
            )

    def check_source_deletable(
        self, source: SourceMediaFile, output: CompliantOutputFile | None
    ) -> None:
        """Decide whether the original source may be deleted.

        Raises:
            CleanupSkippedError: With the reason the source must be kept.
        """
        if output is None:
            raise CleanupSkippedError("converted file not found")
        if output.path == source.path:
            raise CleanupSkippedError("source is the converted file")
        if source.ext != self._source_ext:
            raise CleanupSkippedError(
                f"source extension {source.ext!r} is not {self._source_ext!r}"
            )
        if output.size_bytes < source.size_bytes * self._settings.min_output_ratio:
            raise CleanupSkippedError(
                f"converted file ({format_file_size(output.size_bytes)}) is smaller "
                f"than {self._settings.min_output_ratio:.0%} of the source "
                f"({format_file_size(source.size_bytes)})"
            )

    async def cleanup(
        self,
        source: SourceMediaFile,
        encoded_input: Path,
        output_path: Path,
    ) -> bool:
        """Remove the temporary looped copy and, when safe, the original source.

        Every failure here is logged and swallowed; the output is already done.

        Returns:
            True if the original source was deleted.
        """
        if encoded_input != source.path:
            await self._remove_temporary(encoded_input)

        try:
            output: CompliantOutputFile | None = None
            if await self._file_manager.file_exists(output_path):
                output = CompliantOutputFile(
                    path=output_path,
                    size_bytes=await self._file_manager.file_size(output_path),
                )
            self.check_source_deletable(source, output)
        except (CleanupSkippedError, FileOperationError, FileNotFoundError) as e:
            logger.warning(
                "Keeping original source file.",
                extra={"file_path": str(source.path)},
                exc_info=e,
            )
            return False

        try:
            await self._file_manager.delete_with_permission_repair(source.path)
        except FileOperationError as e:
            logger.warning(
                "Failed to delete original source file.",
                extra={"file_path": str(source.path)},
                exc_info=e,
            )
            return False
        logger.info(
            "Deleted original source file.", extra={"file_path": str(source.path)}
        )
        return True

    async def convert(self, source: SourceMediaFile) -> CompliantOutputFile:
        """Produce the compliant output for ``source``.

        Args:
            source: The downloaded or pre-existing media file.

        Returns:
            The compliant output, reused if it already existed.

        Raises:
            DurationProbeFailedError: If the source duration cannot be read.
            ExtensionFailedError: If a short source cannot be looped.
            EncodeExhaustedError: If every encode attempt failed.
            OutputVerificationFailedError: If ffmpeg succeeded without output.
            FFmpegError: If ffmpeg cannot be started.
        """
        existing = await self.existing_output(source.path)
        if existing is not None:
            logger.info(
                "Compliant output already exists; skipping conversion.",
                extra={"file_path": str(existing.path)},
            )
            return existing

        output_path = self._paths.compliant_path_for(source.path)
        encoded_input = await self.ensure_min_duration(source.path)
        try:
            output = await self.encode(encoded_input, output_path)
        except BaseException:
            if encoded_input != source.path:
                await self._remove_temporary(encoded_input)
            raise
        await self.cleanup(source, encoded_input, output_path)
        return output
