"""Download orchestration: fetch a selected stream pair with yt-dlp.

The Downloader turns a SelectedPair into a SourceMediaFile on disk. It picks a
collision-free destination once, retries failed attempts with a fixed delay,
streams yt-dlp output into progress logging, and verifies the merged file
exists before reporting success.
"""

import asyncio
from collections.abc import Awaitable, Callable
import logging
from pathlib import Path

from .config.preferences import DownloadSettings
from .exceptions import (
    DownloadCancelledError,
    DownloadFailedError,
    OutputVerificationFailedError,
    YtdlpApiError,
)
from .file_manager import FileManager
from .process_runner import kill_process
from .progress import DownloadProgress, parse_download_progress
from .types.candidates import SelectedPair
from .types.media_files import SourceMediaFile
from .utils.formatting import render_progress_bar
from .ytdlp_wrapper.core import YtdlpArgs, YtdlpCore

logger = logging.getLogger(__name__)

type Sleep = Callable[[float], Awaitable[None]]

# Progress is logged once per this many percentage points.
_PROGRESS_LOG_STEP = 10


class _DownloadProgressLogger:
    """Log yt-dlp progress lines at a coarse granularity."""

    def __init__(self, attempt: int):
        self._attempt = attempt
        self._last_bucket = -1
        self.latest: DownloadProgress | None = None

    def on_line(self, line: str) -> None:
        progress = parse_download_progress(line)
        if progress is None:
            logger.debug("yt-dlp output.", extra={"line": line})
            return
        self.latest = progress
        bucket = int(progress.percentage // _PROGRESS_LOG_STEP)
        if bucket <= self._last_bucket:
            return
        self._last_bucket = bucket
        logger.info(
            f"Downloading {render_progress_bar(progress.percentage)}",
            extra={
                "attempt": self._attempt,
                "total_size": progress.total_size,
                "speed": progress.speed,
                "eta": progress.eta,
            },
        )


def _log_stderr_line(line: str) -> None:
    stripped = line.strip()
    if not stripped or "WARNING" in stripped:
        return
    logger.warning(f"yt-dlp: {stripped}")


class Downloader:
    """Download a selected stream pair to a local file.

    Attributes:
        _ytdlp: yt-dlp subprocess wrapper.
        _file_manager: Filesystem helper.
        _settings: Retry and post-processing settings.
        _cookies_path: Optional cookies file handed to yt-dlp.
        _sleep: Awaitable delay used between attempts.
        _process: The running yt-dlp process, if any.
        _downloading: Whether a download is in flight.
        _cancel_requested: Set by ``cancel`` to stop further attempts.
    """

    def __init__(
        self,
        ytdlp: YtdlpCore,
        file_manager: FileManager,
        settings: DownloadSettings,
        cookies_path: Path | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self._ytdlp = ytdlp
        self._file_manager = file_manager
        self._settings = settings
        self._cookies_path = cookies_path
        self._sleep = sleep
        self._process: asyncio.subprocess.Process | None = None
        self._downloading = False
        self._cancel_requested = False

    @property
    def is_downloading(self) -> bool:
        """Return True while a yt-dlp download is in flight."""
        return self._downloading

    def build_args(self, pair: SelectedPair, destination: Path) -> YtdlpArgs:
        """Build the yt-dlp arguments for downloading ``pair`` to ``destination``."""
        return (
            self._ytdlp.args()
            .format(pair.format_expression)
            .output(str(destination))
            .merge_output_format(self._settings.merge_output_format)
            .progress()
            .newline()
            .embed_subs(self._settings.embed_subtitles)
            .embed_thumbnail(self._settings.embed_thumbnail)
            .cookies(self._cookies_path)
        )

    def cancel(self) -> bool:
        """Kill the in-flight download, leaving any partial file in place.

        Returns:
            True if a running process was killed.
        """
        self._cancel_requested = True
        self._downloading = False
        process = self._process
        if process is None:
            return False
        logger.info("Cancelling download.", extra={"pid": process.pid})
        kill_process(process)
        return True

    def _track_process(self, process: asyncio.subprocess.Process) -> None:
        self._process = process

    async def _download_once(
        self, url: str, pair: SelectedPair, destination: Path, attempt: int
    ) -> SourceMediaFile:
        """Run a single yt-dlp download attempt and verify its output.

        Raises:
            YtdlpApiError: If yt-dlp fails.
            OutputVerificationFailedError: If yt-dlp succeeded but no file exists.
        """
        progress_logger = _DownloadProgressLogger(attempt)
        self._downloading = True
        try:
            await self._ytdlp.download(
                self.build_args(pair, destination),
                url,
                on_stdout=progress_logger.on_line,
                on_stderr=_log_stderr_line,
                on_start=self._track_process,
            )
        finally:
            self._process = None
            self._downloading = False

        if not await self._file_manager.file_exists(destination):
            raise OutputVerificationFailedError(
                "yt-dlp reported success but the downloaded file is missing",
                path=str(destination),
            )
        try:
            source = await self._file_manager.inspect_media_file(
                destination, freshly_downloaded=True
            )
        except FileNotFoundError as e:
            raise OutputVerificationFailedError(
                "Downloaded file disappeared before it could be inspected",
                path=str(destination),
            ) from e

        logger.info(
            "Download completed.",
            extra={"file_path": str(destination), "size_bytes": source.size_bytes},
        )
        return source

    async def download(
        self, url: str, pair: SelectedPair, destination: Path
    ) -> SourceMediaFile:
        """Download ``pair`` from ``url``, retrying failed attempts.

        Args:
            url: Video page URL.
            pair: Streams to download.
            destination: Desired output path. A numbered sibling is used if it
                already exists.

        Returns:
            The downloaded file.

        Raises:
            DownloadFailedError: If every attempt failed.
            DownloadCancelledError: If ``cancel`` was called.
            OutputVerificationFailedError: If yt-dlp succeeded without output.
        """
        self._cancel_requested = False
        destination = await self._file_manager.unique_path(destination)
        attempts = self._settings.retry_attempts
        log_params = {
            "url": url,
            "format_expression": pair.format_expression,
            "file_path": str(destination),
        }
        logger.info("Starting download.", extra=log_params)

        last_error = ""
        for attempt in range(1, attempts + 1):
            try:
                return await self._download_once(url, pair, destination, attempt)
            except YtdlpApiError as e:
                if self._cancel_requested:
                    raise DownloadCancelledError(url=url) from e
                last_error = str(e)
                if attempt < attempts:
                    logger.warning(
                        "Download attempt failed; retrying.",
                        extra={
                            **log_params,
                            "attempt": attempt,
                            "max_attempts": attempts,
                            "retry_delay_seconds": self._settings.retry_delay_seconds,
                        },
                        exc_info=e,
                    )
                    await self._sleep(self._settings.retry_delay_seconds)
                    if self._cancel_requested:
                        raise DownloadCancelledError(url=url) from e

        raise DownloadFailedError(attempts=attempts, last_error=last_error, url=url)
