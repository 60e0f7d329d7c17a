"""Thin async wrapper around ffmpeg for the HEVC conversion stage.

Provides two operations:
- Looping a short source up to a minimum duration (stream copy, no re-encode)
- Encoding to the fixed 4K/60fps 10-bit HEVC profile
"""

import logging
from pathlib import Path

from .config.preferences import ConversionSettings
from .exceptions import ExtensionFailedError, FFmpegError
from .process_runner import LineHandler, ProcessResult, ProcessRunner
from .types.conversion_attempt import ConversionAttempt

logger = logging.getLogger(__name__)


class FFmpeg:
    """Run ffmpeg commands for media processing.

    Attributes:
        _executable: ffmpeg binary name or path.
        _profile: Target encode profile.
        _runner: Subprocess runner.
    """

    def __init__(
        self,
        profile: ConversionSettings,
        executable: str = "ffmpeg",
        runner: ProcessRunner | None = None,
    ):
        self._profile = profile
        self._executable = executable
        self._runner = runner or ProcessRunner()

    def build_loop_args(
        self, input_path: Path, output_path: Path, duration_seconds: float
    ) -> list[str]:
        """Build the command that repeats the input until it is long enough."""
        return [
            self._executable,
            "-stream_loop",
            "-1",
            "-i",
            str(input_path),
            "-t",
            f"{duration_seconds:g}",
            "-c",
            "copy",
            "-avoid_negative_ts",
            "make_zero",
            "-fflags",
            "+genpts",
            "-y",
            str(output_path),
        ]

    def build_hevc_args(
        self, input_path: Path, output_path: Path, attempt: ConversionAttempt
    ) -> list[str]:
        """Build the HEVC encode command for one rung of the fallback ladder.

        Args:
            input_path: Source media file.
            output_path: Destination of the compliant file.
            attempt: Selects the encoder and the audio treatment.

        Returns:
            The full command line, executable first.
        """
        profile = self._profile
        encoder = (
            profile.software_encoder
            if attempt.use_fallback
            else profile.hardware_encoder
        )
        cmd = [
            self._executable,
            "-i",
            str(input_path),
            "-c:v",
            encoder,
            "-tag:v",
            "hvc1",
            "-movflags",
            "+faststart",
            "-pix_fmt",
            profile.pixel_format,
            "-r",
            str(profile.target_fps),
            "-vf",
            f"scale={profile.target_width}:{profile.target_height}:flags=lanczos",
            "-b:v",
            profile.video_bitrate,
            "-maxrate",
            profile.max_bitrate,
            "-bufsize",
            profile.buffer_size,
            "-c:a",
            "aac" if attempt.reencode_audio else "copy",
        ]
        if attempt.use_fallback:
            cmd.extend(["-profile:v", "main10", "-level", "5.1", "-preset", "medium"])
        cmd.extend(["-y", str(output_path)])
        return cmd

    async def loop_to_duration(
        self, input_path: Path, output_path: Path, duration_seconds: float
    ) -> None:
        """Loop the input by stream copy until it reaches ``duration_seconds``.

        Raises:
            ExtensionFailedError: When ffmpeg cannot run or exits non-zero.
        """
        cmd = self.build_loop_args(input_path, output_path, duration_seconds)
        try:
            result = await self._runner.run(cmd)
        except OSError as e:
            raise ExtensionFailedError(
                f"Failed to execute {self._executable} for looping"
            ) from e
        if not result.ok:
            raise ExtensionFailedError(
                f"Looping to {duration_seconds:g}s failed with code {result.returncode}",
                stderr=result.stderr,
            )

    async def encode_hevc(
        self,
        input_path: Path,
        output_path: Path,
        attempt: ConversionAttempt,
        on_stderr_line: LineHandler | None = None,
    ) -> ProcessResult:
        """Run one HEVC encode attempt.

        A non-zero exit is returned to the caller, which owns the retry
        decision.

        Args:
            input_path: Source media file.
            output_path: Destination of the compliant file.
            attempt: Current ladder state.
            on_stderr_line: Receives each ffmpeg stderr line as it arrives.

        Returns:
            The finished process result.

        Raises:
            FFmpegError: When ffmpeg cannot be started at all.
        """
        cmd = self.build_hevc_args(input_path, output_path, attempt)
        logger.debug(
            "Starting HEVC encode attempt.",
            extra={"attempt": attempt.number, "rung": attempt.rung, "cmd": cmd},
        )
        try:
            return await self._runner.stream(cmd, on_stderr=on_stderr_line)
        except FileNotFoundError as e:
            raise FFmpegError(f"{self._executable} executable not found") from e
        except OSError as e:
            raise FFmpegError(f"Failed to execute {self._executable}") from e
