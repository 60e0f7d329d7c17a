"""Tests for PathManager filename derivation."""

from pathlib import Path

import pytest

from hevcfetch.config.preferences import FileNamingSettings
from hevcfetch.exceptions import FileOperationError
from hevcfetch.path_manager import PathManager
from hevcfetch.types import StreamDescriptor, VideoCandidate


def candidate(height: int | None, fps: float | None) -> VideoCandidate:
    """Build a video-only candidate."""
    return VideoCandidate.from_descriptor(
        StreamDescriptor(
            format_id="1",
            ext="mp4",
            vcodec="vp9",
            acodec="none",
            height=height,
            fps=fps,
        )
    )


@pytest.fixture
def paths(tmp_path: Path) -> PathManager:
    """PathManager rooted in a temporary directory."""
    return PathManager(tmp_path / "out")


@pytest.mark.unit
@pytest.mark.parametrize(
    ("title", "expected"),
    [
        ("My Video: Part 1!", "My_Video_Part_1"),
        ("already_safe-name", "already_safe-name"),
        ("Ünïcødé 日本語", "ncd_"),
        ("???", "video"),
        ("", "video"),
    ],
)
def test_safe_title(paths: PathManager, title: str, expected: str):
    """Unsafe characters are dropped and spaces replaced."""
    assert paths.safe_title(title) == expected


@pytest.mark.unit
def test_safe_title_truncates(tmp_path: Path):
    """Titles are cut to the configured length."""
    paths = PathManager(tmp_path, FileNamingSettings(max_title_length=5))
    assert paths.safe_title("abcdefghij") == "abcde"


@pytest.mark.unit
def test_safe_title_custom_space_replacement(tmp_path: Path):
    """The space replacement is configurable."""
    paths = PathManager(tmp_path, FileNamingSettings(space_replacement="-"))
    assert paths.safe_title("a b c") == "a-b-c"


@pytest.mark.unit
def test_source_filename(paths: PathManager):
    """Filenames carry the height and integer frame rate."""
    assert (
        paths.source_filename("Big Buck Bunny", candidate(2160, 59.94))
        == "Big_Buck_Bunny_2160p_59fps.mp4"
    )


@pytest.mark.unit
def test_source_filename_defaults_fps(paths: PathManager):
    """A stream without a frame rate is named as 30fps."""
    filename = paths.source_filename("clip", candidate(1080, None))
    assert filename == "clip_1080p_30fps.mp4"


@pytest.mark.unit
def test_derived_paths(paths: PathManager, tmp_path: Path):
    """The compliant and looped paths sit next to the source."""
    source = paths.source_path("clip", candidate(2160, 60.0))

    assert source == tmp_path / "out" / "clip_2160p_60fps.mp4"
    assert paths.compliant_path_for(source) == (
        tmp_path / "out" / "clip_2160p_60fps.mov"
    )
    assert paths.extended_path_for(source) == (
        tmp_path / "out" / "clip_2160p_60fps.extended.mp4"
    )


@pytest.mark.unit
@pytest.mark.asyncio
async def test_ensure_output_dir(paths: PathManager):
    """The output directory is created on demand and idempotently."""
    created = await paths.ensure_output_dir()
    assert created.is_dir()
    assert await paths.ensure_output_dir() == created


@pytest.mark.unit
@pytest.mark.asyncio
async def test_ensure_output_dir_failure(tmp_path: Path):
    """A file in the way of the directory raises FileOperationError."""
    blocker = tmp_path / "out"
    blocker.write_bytes(b"")

    with pytest.raises(FileOperationError):
        await PathManager(blocker).ensure_output_dir()
