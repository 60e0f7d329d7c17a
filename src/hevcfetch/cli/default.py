"""Default mode: fetch and convert a single video URL.

This module wires every stage component together, runs the pipeline, and
maps fatal errors to operator hints and exit codes.
"""

import logging

from ..config import AppSettings
from ..downloader import Downloader
from ..exceptions import (
    DownloadCancelledError,
    FFmpegError,
    FFProbeError,
    HevcfetchError,
    YtdlpError,
)
from ..ffmpeg import FFmpeg
from ..ffprobe import FFProbe
from ..file_manager import FileManager
from ..path_manager import PathManager
from ..pipeline import Installer, MediaPipeline
from ..process_runner import ProcessRunner
from ..transcoder import TranscodeEngine
from ..ytdlp_wrapper.core import YtdlpCore

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_NO_URL = 2


def build_pipeline(
    settings: AppSettings,
    runner: ProcessRunner | None = None,
    installer: Installer | None = None,
) -> MediaPipeline:
    """Construct a MediaPipeline and its stage components from settings.

    Args:
        settings: Application settings.
        runner: Subprocess runner shared by every tool wrapper.
        installer: Optional destination collaborator.

    Returns:
        A ready-to-run pipeline.
    """
    runner = runner or ProcessRunner()
    file_manager = FileManager()
    paths = PathManager(
        output_dir=settings.output_dir,
        naming=settings.file_naming,
        source_ext=settings.download.merge_output_format,
        output_ext=settings.conversion.output_extension,
    )
    ytdlp = YtdlpCore(executable=settings.ytdlp_path, runner=runner)
    downloader = Downloader(
        ytdlp=ytdlp,
        file_manager=file_manager,
        settings=settings.download,
        cookies_path=settings.cookies_path,
    )
    transcoder = TranscodeEngine(
        ffmpeg=FFmpeg(
            profile=settings.conversion,
            executable=settings.ffmpeg_path,
            runner=runner,
        ),
        ffprobe=FFProbe(executable=settings.ffprobe_path, runner=runner),
        file_manager=file_manager,
        paths=paths,
        settings=settings.conversion,
        source_ext=settings.download.merge_output_format,
    )
    return MediaPipeline(
        settings=settings,
        ytdlp=ytdlp,
        downloader=downloader,
        transcoder=transcoder,
        paths=paths,
        file_manager=file_manager,
        installer=installer,
    )


def error_hint(error: BaseException) -> str | None:
    """Return an operator hint for a fatal error, if one applies."""
    message = str(error)
    match error:
        case YtdlpError() if "not found" in message:
            return "Make sure yt-dlp is installed and on PATH (pip install yt-dlp)."
        case FFmpegError() | FFProbeError() if "not found" in message:
            return "Make sure ffmpeg and ffprobe are installed and on PATH."
        case _ if "Video unavailable" in message:
            return "The video might be private, deleted, or region-locked."
        case _ if "network" in message.lower() or "connection" in message.lower():
            return "Check your internet connection and try again."
        case _:
            return None


async def default(settings: AppSettings, pipeline: MediaPipeline) -> int:
    """Run the pipeline for ``settings.url`` and return a process exit code."""
    if not settings.url:
        logger.error("No URL given. Pass --url or set HEVCFETCH_URL.")
        return EXIT_NO_URL

    try:
        result = await pipeline.run(settings.url)
    except DownloadCancelledError as e:
        logger.warning("Download cancelled.", exc_info=e)
        return EXIT_FAILURE
    except HevcfetchError as e:
        logger.error("Application error.", exc_info=e)
        hint = error_hint(e)
        if hint:
            logger.warning(hint)
        return EXIT_FAILURE

    logger.debug("Pipeline finished.", extra={"file_path": str(result.final_path)})
    return EXIT_OK
