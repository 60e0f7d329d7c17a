"""Command-line interface entry point for hevcfetch.

This module provides the main CLI function that handles settings loading,
logging setup, per-video log context, and hands off to the default mode.
"""

import logging

from ..config import AppSettings
from ..logging_config import set_context_id, setup_logging
from ..utils.url_utils import extract_video_id, is_youtube_url
from .default import build_pipeline, default


async def main_cli(settings: AppSettings | None = None) -> int:
    """Initialize and run hevcfetch based on configuration.

    Args:
        settings: Pre-built settings; parsed from the command line, environment
            and config file when omitted.

    Returns:
        Process exit code.
    """
    if settings is None:
        settings = AppSettings(_cli_parse_args=True)  # type: ignore

    setup_logging(
        log_format_type=settings.log_format,
        app_log_level_name=settings.log_level,
        include_stacktrace=settings.log_include_stacktrace,
    )

    logger = logging.getLogger(__name__)

    logger.debug(
        "Application logging configured.",
        extra={
            "log_format": settings.log_format,
            "log_level": settings.log_level,
            "include_stacktrace": settings.log_include_stacktrace,
        },
    )
    logger.debug(
        "Application settings loaded.",
        extra={
            "config_file": str(settings.config_file),
            "output_dir": str(settings.output_dir),
        },
    )

    if settings.url:
        set_context_id(extract_video_id(settings.url) or "run")
        if not is_youtube_url(settings.url):
            logger.warning(
                "URL is not a YouTube URL; attempting anyway.",
                extra={"url": settings.url},
            )

    return await default(settings, build_pipeline(settings))
