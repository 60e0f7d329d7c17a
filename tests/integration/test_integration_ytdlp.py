"""Integration tests for metadata extraction and format selection with real yt-dlp.

These tests hit YouTube over the network.
"""

from pathlib import Path
import shutil

import pytest

from hevcfetch.config import AudioPreferences, VideoPreferences
from hevcfetch.format_selector import select_formats
from hevcfetch.ytdlp_wrapper.core import YtdlpCore

BIG_BUCK_BUNNY_SHORT_URL = "https://youtu.be/aqz-KE-bpKQ"
BIG_BUCK_BUNNY_EXPECTED_DURATION_SECONDS = 635


@pytest.fixture
def ytdlp() -> YtdlpCore:
    """Real yt-dlp wrapper."""
    if shutil.which("yt-dlp") is None:
        pytest.skip("yt-dlp is not installed")
    return YtdlpCore()


@pytest.mark.integration
@pytest.mark.asyncio
async def test_extract_info_and_select(ytdlp: YtdlpCore, cookies_path: Path | None):
    """A public video yields metadata and a selectable 1080p pick."""
    result = await ytdlp.extract_info(
        ytdlp.args().cookies(cookies_path), BIG_BUCK_BUNNY_SHORT_URL
    )
    info = result.payload.video_info()

    assert info.video_id == "aqz-KE-bpKQ"
    assert info.duration == BIG_BUCK_BUNNY_EXPECTED_DURATION_SECONDS
    assert info.formats

    pair = select_formats(
        info.formats,
        VideoPreferences(max_resolution=1080),
        AudioPreferences(),
    )
    assert pair.video.height is not None
    assert pair.video.height <= 1080
    assert pair.format_expression.startswith(pair.video.format_id)
