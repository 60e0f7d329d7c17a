"""Pure parsers for yt-dlp and ffmpeg progress output.

Every parser takes a single line of tool output and returns either a typed
progress value or None. They never raise on malformed input, so callers can
feed them every line the tools print.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
import re
import time

_DOWNLOAD_PROGRESS_RE = re.compile(
    r"\[download\]\s+(\d+(?:\.\d+)?)%\s+of\s+~?\s*([\d.]+\s?\w+)"
    r"\s+at\s+([\d.]+\s?\w+/s)(?:\s+ETA\s+(\d+:\d+(?::\d+)?))?"
)
_DURATION_RE = re.compile(r"Duration:\s*(\d+):(\d{2}):(\d{2}(?:\.\d+)?)")
_TIME_RE = re.compile(r"time=\s*(\d+):(\d{2}):(\d{2}(?:\.\d+)?)")
_SPEED_RE = re.compile(r"speed=\s*(\d+(?:\.\d+)?)x")

UNKNOWN_ETA = "Unknown"

# ETA estimates are too noisy to show before this much progress.
_MIN_PERCENT_FOR_ETA = 5.0


@dataclass(frozen=True, slots=True)
class DownloadProgress:
    """One progress report from yt-dlp.

    Attributes:
        percentage: Completed share, 0-100.
        total_size: Total size as printed (e.g. ``123.45MiB``).
        speed: Transfer speed as printed (e.g. ``1.23MiB/s``).
        eta: Remaining time as printed, or ``"Unknown"``.
    """

    percentage: float
    total_size: str
    speed: str
    eta: str = UNKNOWN_ETA


@dataclass(frozen=True, slots=True)
class EncodeProgress:
    """One progress report from ffmpeg.

    Attributes:
        position_seconds: Output timestamp reached so far.
        speed: Encode speed relative to realtime, when reported.
    """

    position_seconds: float
    speed: float | None = None

    def percentage_of(self, duration_seconds: float | None) -> float | None:
        """Return completion percentage against a total duration, capped at 100."""
        if not duration_seconds or duration_seconds <= 0:
            return None
        return min(self.position_seconds / duration_seconds * 100.0, 100.0)


def _hms_to_seconds(hours: str, minutes: str, seconds: str) -> float:
    return int(hours) * 3600 + int(minutes) * 60 + float(seconds)


def parse_download_progress(line: str) -> DownloadProgress | None:
    """Parse a ``[download]`` progress line printed by yt-dlp with ``--newline``.

    Args:
        line: One line of yt-dlp stdout.

    Returns:
        The parsed progress, or None if the line is not a progress report.
    """
    match = _DOWNLOAD_PROGRESS_RE.search(line)
    if match is None:
        return None
    try:
        percentage = float(match.group(1))
    except ValueError:
        return None
    return DownloadProgress(
        percentage=percentage,
        total_size=match.group(2).replace(" ", ""),
        speed=match.group(3).replace(" ", ""),
        eta=match.group(4) or UNKNOWN_ETA,
    )


def parse_encode_duration(line: str) -> float | None:
    """Return the input duration in seconds from an ffmpeg ``Duration:`` header.

    ``Duration: N/A`` and unrelated lines yield None.
    """
    match = _DURATION_RE.search(line)
    if match is None:
        return None
    return _hms_to_seconds(*match.groups())


def parse_encode_progress(line: str) -> EncodeProgress | None:
    """Return the encode position from an ffmpeg ``time=`` status line."""
    match = _TIME_RE.search(line)
    if match is None:
        return None
    speed_match = _SPEED_RE.search(line)
    return EncodeProgress(
        position_seconds=_hms_to_seconds(*match.groups()),
        speed=float(speed_match.group(1)) if speed_match else None,
    )


def estimate_eta(elapsed_seconds: float, percentage: float) -> float | None:
    """Estimate remaining seconds from elapsed time and completion percentage.

    Args:
        elapsed_seconds: Time spent so far.
        percentage: Completed share, 0-100.

    Returns:
        Remaining seconds, or None while progress is at or below 5%.
    """
    if percentage <= _MIN_PERCENT_FOR_ETA:
        return None
    total = elapsed_seconds / (min(percentage, 100.0) / 100.0)
    return max(total - elapsed_seconds, 0.0)


@dataclass(slots=True)
class Stopwatch:
    """Measure elapsed time against an injectable monotonic clock.

    Attributes:
        clock: Time source returning seconds.
    """

    clock: Callable[[], float] = time.monotonic
    _start: float = field(init=False)

    def __post_init__(self) -> None:
        self._start = self.clock()

    def elapsed(self) -> float:
        """Return seconds elapsed since construction."""
        return self.clock() - self._start
