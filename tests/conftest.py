"""Suite-wide pytest hooks: logging setup and the ``--integration`` gate."""

import pytest

from hevcfetch.logging_config import setup_logging


def pytest_addoption(parser: pytest.Parser) -> None:
    """Register ``--integration`` for tests that run the real tools."""
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="also run tests that call yt-dlp, ffmpeg and ffprobe",
    )


def pytest_configure(config: pytest.Config) -> None:
    """Configure logging the way the CLI does by default."""
    setup_logging(
        log_format_type="human", app_log_level_name="INFO", include_stacktrace=False
    )


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    """Skip ``integration``-marked tests unless ``--integration`` was given."""
    if config.getoption("--integration"):
        return
    skip = pytest.mark.skip(reason="needs --integration")
    for item in items:
        if item.get_closest_marker("integration") is not None:
            item.add_marker(skip)
