"""Shared fixtures for integration tests against the real external tools."""

from pathlib import Path
import shutil

import pytest
import pytest_asyncio

from hevcfetch.config import ConversionSettings
from hevcfetch.ffmpeg import FFmpeg
from hevcfetch.ffprobe import FFProbe
from hevcfetch.process_runner import ProcessRunner


def _require(tool: str) -> None:
    if shutil.which(tool) is None:
        pytest.skip(f"{tool} is not installed")


@pytest.fixture
def cookies_path() -> Path | None:
    """Provide cookies.txt path if it exists, otherwise None.

    Integration tests can use this fixture to conditionally authenticate
    with YouTube to avoid rate limiting during testing.
    """
    path = Path.cwd() / "cookies.txt"
    return path if path.exists() else None


@pytest.fixture
def small_profile() -> ConversionSettings:
    """A tiny target profile so real encodes finish quickly."""
    return ConversionSettings(
        min_duration_seconds=4,
        target_width=320,
        target_height=180,
        target_fps=10,
        video_bitrate="500k",
        max_bitrate="600k",
        buffer_size="1M",
    )


@pytest.fixture
def ffmpeg(small_profile: ConversionSettings) -> FFmpeg:
    """Real ffmpeg wrapper using the small profile."""
    _require("ffmpeg")
    return FFmpeg(profile=small_profile)


@pytest.fixture
def ffprobe() -> FFProbe:
    """Real ffprobe wrapper."""
    _require("ffprobe")
    return FFProbe()


@pytest_asyncio.fixture
async def sample_clip(tmp_path: Path, ffmpeg: FFmpeg) -> Path:
    """Generate a two-second test pattern clip with a tone."""
    clip = tmp_path / "Sample_180p_10fps.mp4"
    # fmt: off
    cmd = [
        "ffmpeg", "-y",
        "-f", "lavfi", "-i", "testsrc=size=320x180:rate=10",
        "-f", "lavfi", "-i", "sine=frequency=440:sample_rate=44100",
        "-t", "2",
        "-c:v", "mpeg4", "-c:a", "aac",
        "-shortest",
        str(clip),
    ]
    # fmt: on
    result = await ProcessRunner().run(cmd)
    assert result.ok, result.stderr
    return clip
