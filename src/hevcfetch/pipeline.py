"""End-to-end orchestration for one video: analyze, download, convert, install.

The MediaPipeline wires the stage components together. It owns no subprocess
logic itself; it decides which stages run based on what is already on disk.
"""

from collections.abc import Callable
from dataclasses import dataclass
import logging
from pathlib import Path
import time
from typing import Protocol

from .config.config import AppSettings
from .downloader import Downloader
from .file_manager import FileManager
from .format_selector import select_formats
from .path_manager import PathManager
from .progress import Stopwatch
from .transcoder import TranscodeEngine
from .types.candidates import SelectedPair, VideoCandidate
from .types.media_files import SourceMediaFile
from .types.video_info import VideoInfo
from .utils.formatting import (
    format_date,
    format_duration,
    format_file_size,
    format_number,
    format_time,
    truncate,
)
from .ytdlp_wrapper.core import YtdlpCore

logger = logging.getLogger(__name__)

_DESCRIPTION_PREVIEW_LENGTH = 100


class Installer(Protocol):
    """Hands the final file to its destination (e.g. a system wallpaper store)."""

    async def install(self, path: Path) -> bool:
        """Install the file at ``path``; return True on success."""
        ...


@dataclass(frozen=True, slots=True)
class PipelineResult:
    """Outcome of one pipeline run.

    Attributes:
        final_path: The deliverable: compliant output, or the source in
            download-only mode.
        size_bytes: Size of the deliverable.
        converted: Whether the deliverable is the compliant HEVC output.
        reused_existing: Whether the deliverable was already on disk.
        installed: Installer result, or None when no installer is configured.
        elapsed_seconds: Wall time of the run.
    """

    final_path: Path
    size_bytes: int
    converted: bool
    reused_existing: bool
    installed: bool | None
    elapsed_seconds: float


def log_video_info(info: VideoInfo) -> None:
    """Log the descriptive metadata of a video."""
    logger.info(
        f"Video: {info.title}",
        extra={
            "uploader": info.uploader or "Unknown",
            "duration": format_duration(info.duration),
            "views": format_number(info.view_count),
            "upload_date": format_date(info.upload_date),
            "format_count": len(info.formats),
        },
    )
    if info.description:
        logger.info(
            f"Description: {truncate(info.description, _DESCRIPTION_PREVIEW_LENGTH)}"
        )


def _describe_video(video: VideoCandidate) -> str:
    fps = int(video.fps) if video.fps is not None else 30
    return (
        f"{video.height or 0}p {fps}fps {video.ext} ({video.vcodec}) "
        f"{format_file_size(video.filesize)}"
    )


def log_selected_formats(pair: SelectedPair) -> None:
    """Log a one-line summary of each selected stream."""
    logger.info(
        f"Selected video: {_describe_video(pair.video)}",
        extra={"format_id": pair.video.format_id},
    )
    if pair.audio is not None:
        abr = int(pair.audio.abr) if pair.audio.abr is not None else 0
        logger.info(
            f"Selected audio: {abr}kbps {pair.audio.ext} ({pair.audio.acodec}) "
            f"{format_file_size(pair.audio.filesize)}",
            extra={"format_id": pair.audio.format_id},
        )
    elif pair.video.has_audio:
        logger.info("Selected audio: embedded in video format")
    else:
        logger.warning("Selected audio: none (video will be silent)")


class MediaPipeline:
    """Run the full fetch-and-convert flow for one URL.

    Attributes:
        _settings: Application settings.
        _ytdlp: yt-dlp wrapper used for metadata extraction.
        _downloader: Download stage.
        _transcoder: Transcode stage.
        _paths: Path derivation helper.
        _file_manager: Filesystem helper.
        _installer: Optional destination collaborator.
        _clock: Time source for the run summary.
    """

    def __init__(
        self,
        settings: AppSettings,
        ytdlp: YtdlpCore,
        downloader: Downloader,
        transcoder: TranscodeEngine,
        paths: PathManager,
        file_manager: FileManager,
        installer: Installer | None = None,
        clock: Callable[[], float] | None = None,
    ):
        self._settings = settings
        self._ytdlp = ytdlp
        self._downloader = downloader
        self._transcoder = transcoder
        self._paths = paths
        self._file_manager = file_manager
        self._installer = installer
        self._clock = clock or time.monotonic

    @property
    def downloader(self) -> Downloader:
        """Return the download stage, e.g. to cancel an in-flight download."""
        return self._downloader

    async def analyze(self, url: str) -> tuple[VideoInfo, SelectedPair]:
        """Fetch metadata for ``url`` and select the streams to download.

        Raises:
            YtdlpApiError: If metadata extraction fails.
            YtdlpDataError: If the metadata is malformed.
            NoUsableVideoFormatError: If no stream qualifies as video.
        """
        logger.info("Retrieving video information.", extra={"url": url})
        args = self._ytdlp.args().cookies(self._settings.cookies_path)
        run_result = await self._ytdlp.extract_info(args, url)
        info = run_result.payload.video_info()
        log_video_info(info)

        pair = select_formats(info.formats, self._settings.video, self._settings.audio)
        log_selected_formats(pair)
        self.check_quality(pair.video)
        return info, pair

    def check_quality(self, video: VideoCandidate) -> bool:
        """Warn when the selected stream is below the recommended height.

        Returns:
            True if the height meets the recommendation.
        """
        recommended = self._settings.min_recommended_resolution
        if video.height is not None and video.height >= recommended:
            return True
        logger.warning(
            "Selected resolution is below the recommended minimum; "
            "the result will be upscaled.",
            extra={
                "selected_height": video.height,
                "recommended_height": recommended,
            },
        )
        return False

    async def _existing_source(self, source_path: Path) -> SourceMediaFile | None:
        if not await self._file_manager.file_exists(source_path):
            return None
        logger.info(
            "Source file already exists; skipping download.",
            extra={"file_path": str(source_path)},
        )
        return await self._file_manager.inspect_media_file(
            source_path, freshly_downloaded=False
        )

    async def _install(self, path: Path) -> bool | None:
        if self._installer is None:
            return None
        logger.info("Installing final file.", extra={"file_path": str(path)})
        installed = await self._installer.install(path)
        if installed:
            logger.info("Installation succeeded.", extra={"file_path": str(path)})
        else:
            logger.warning("Installation failed.", extra={"file_path": str(path)})
        return installed

    async def run(self, url: str) -> PipelineResult:
        """Process one video URL end to end.

        Existing files short-circuit work: a compliant output skips download
        and conversion, and an existing source skips the download.

        Args:
            url: Video page URL.

        Returns:
            What was produced, and how.

        Raises:
            HevcfetchError: Any fatal stage error.
        """
        stopwatch = Stopwatch(clock=self._clock)
        await self._paths.ensure_output_dir()

        info, pair = await self.analyze(url)
        source_path = self._paths.source_path(info.title, pair.video)
        convert = self._settings.download.convert_to_mov

        existing_output = (
            await self._transcoder.existing_output(source_path) if convert else None
        )
        if existing_output is not None:
            logger.info(
                "Compliant output already exists; nothing to do.",
                extra={"file_path": str(existing_output.path)},
            )
            final_path, size_bytes, reused = (
                existing_output.path,
                existing_output.size_bytes,
                True,
            )
        else:
            source = await self._existing_source(source_path)
            if source is None:
                source = await self._downloader.download(url, pair, source_path)

            if convert:
                output = await self._transcoder.convert(source)
                final_path, size_bytes, reused = (
                    output.path,
                    output.size_bytes,
                    output.reused,
                )
            else:
                logger.info(
                    "Conversion disabled; keeping the downloaded file.",
                    extra={"file_path": str(source.path)},
                )
                final_path, size_bytes, reused = (
                    source.path,
                    source.size_bytes,
                    not source.freshly_downloaded,
                )

        installed = await self._install(final_path)
        result = PipelineResult(
            final_path=final_path,
            size_bytes=size_bytes,
            converted=convert,
            reused_existing=reused,
            installed=installed,
            elapsed_seconds=stopwatch.elapsed(),
        )
        log_summary(result)
        return result


def log_summary(result: PipelineResult) -> None:
    """Log the run summary."""
    logger.info(
        "Run complete.",
        extra={
            "total_time": format_time(result.elapsed_seconds),
            "file_path": str(result.final_path),
            "final_size": format_file_size(result.size_bytes),
            "reused_existing": result.reused_existing,
            "installed": result.installed,
        },
    )
