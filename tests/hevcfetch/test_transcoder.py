# pyright: reportPrivateUsage=false

"""Tests for the TranscodeEngine: reuse, looping, fallback ladder and cleanup."""

import asyncio
import json
from pathlib import Path
from unittest.mock import MagicMock, patch

from helpers.fake_runner import FakeProcessRunner, ScriptedRun, touch
import pytest

from hevcfetch.config.preferences import ConversionSettings
from hevcfetch.exceptions import (
    CleanupSkippedError,
    DurationProbeFailedError,
    EncodeExhaustedError,
    ExtensionFailedError,
    OutputVerificationFailedError,
)
from hevcfetch.ffmpeg import FFmpeg
from hevcfetch.ffprobe import FFProbe
from hevcfetch.file_manager import FileManager
from hevcfetch.path_manager import PathManager
from hevcfetch.transcoder import TranscodeEngine, _EncodeProgressLogger
from hevcfetch.types import CompliantOutputFile, ConversionAttempt, SourceMediaFile

# --- Fixtures and helpers ---


def duration_run(duration: float) -> ScriptedRun:
    """Script an ffprobe run reporting ``duration`` seconds."""
    return ScriptedRun(stdout=json.dumps({"format": {"duration": str(duration)}}))


def make_source(
    tmp_path: Path, size: int = 1000, name: str = "clip_2160p_60fps.mp4"
) -> SourceMediaFile:
    """Write a source file of ``size`` bytes and describe it."""
    path = tmp_path / name
    path.write_bytes(b"s" * size)
    return SourceMediaFile(path=path, size_bytes=size)


@pytest.fixture
def runner() -> FakeProcessRunner:
    """Fake subprocess runner."""
    return FakeProcessRunner()


def make_engine(
    runner: FakeProcessRunner, tmp_path: Path, **overrides: float | int | str
) -> TranscodeEngine:
    """Build an engine over real files in ``tmp_path`` and a fake runner."""
    settings = ConversionSettings(**overrides)  # type: ignore[arg-type]
    return TranscodeEngine(
        ffmpeg=FFmpeg(settings, runner=runner),
        ffprobe=FFProbe(runner=runner),
        file_manager=FileManager(),
        paths=PathManager(tmp_path),
        settings=settings,
        clock=lambda: 0.0,
    )


@pytest.fixture
def engine(runner: FakeProcessRunner, tmp_path: Path) -> TranscodeEngine:
    """Engine with the default conversion profile."""
    return make_engine(runner, tmp_path)


def encoder_of(cmd: list[str]) -> str:
    return cmd[cmd.index("-c:v") + 1]


def audio_codec_of(cmd: list[str]) -> str:
    return cmd[cmd.index("-c:a") + 1]


# --- Tests for reuse ---


@pytest.mark.unit
@pytest.mark.asyncio
async def test_existing_output_is_reused_without_subprocesses(
    engine: TranscodeEngine, runner: FakeProcessRunner, tmp_path: Path
):
    """A .mov already on disk short-circuits the whole stage."""
    source = make_source(tmp_path)
    existing = source.path.with_suffix(".mov")
    existing.write_bytes(b"m" * 4096)

    output = await engine.convert(source)

    assert output == CompliantOutputFile(path=existing, size_bytes=4096, reused=True)
    assert runner.calls == []
    assert source.path.exists()


# --- Tests for the fallback ladder ---


@pytest.mark.unit
@pytest.mark.asyncio
async def test_first_attempt_success_deletes_source(
    engine: TranscodeEngine, runner: FakeProcessRunner, tmp_path: Path
):
    """A successful hardware encode yields the output and removes the source."""
    source = make_source(tmp_path, size=1000)
    runner.queue(
        duration_run(120.0),
        ScriptedRun(
            stderr=(
                "  Duration: 00:02:00.00, start: 0.000000, bitrate: 5000 kb/s\n"
                "frame=  600 fps= 60 size=  1024kB time=00:01:00.00 speed=2.0x\n"
            ),
            side_effect=touch(content=b"o" * 2048),
        ),
    )

    output = await engine.convert(source)

    assert output.path == source.path.with_suffix(".mov")
    assert output.size_bytes == 2048
    assert not output.reused
    assert len(runner.calls) == 2
    assert encoder_of(runner.calls[1]) == "hevc_videotoolbox"
    assert not source.path.exists()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_fallback_to_software_after_hardware_failure(
    engine: TranscodeEngine, runner: FakeProcessRunner, tmp_path: Path
):
    """A hardware failure is retried with the software encoder."""
    source = make_source(tmp_path)
    runner.queue(
        duration_run(120.0),
        ScriptedRun(returncode=1, stderr="Device not available"),
        ScriptedRun(side_effect=touch()),
    )

    output = await engine.convert(source)

    assert output.path.exists()
    encodes = runner.calls[1:]
    assert [encoder_of(c) for c in encodes] == ["hevc_videotoolbox", "libx265"]
    assert [audio_codec_of(c) for c in encodes] == ["copy", "copy"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_exhaustion_reports_attempts_and_last_stderr(
    engine: TranscodeEngine, runner: FakeProcessRunner, tmp_path: Path
):
    """Five failures climb the ladder and raise with the final stderr verbatim."""
    source = make_source(tmp_path)
    runner.queue(
        duration_run(120.0),
        *(ScriptedRun(returncode=1, stderr=f"failure {n}") for n in range(1, 6)),
    )

    with pytest.raises(EncodeExhaustedError) as exc_info:
        await engine.convert(source)

    error = exc_info.value
    assert error.attempts == 5
    assert error.exit_code == 1
    assert error.diagnostics == "failure 5"
    assert "failed after 5 attempts" in str(error)

    encodes = runner.calls[1:]
    assert len(encodes) == 5
    assert [encoder_of(c) for c in encodes] == [
        "hevc_videotoolbox",
        "libx265",
        "libx265",
        "libx265",
        "libx265",
    ]
    assert [audio_codec_of(c) for c in encodes] == [
        "copy",
        "copy",
        "aac",
        "aac",
        "aac",
    ]
    assert source.path.exists()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_attempt_count_follows_settings(
    runner: FakeProcessRunner, tmp_path: Path
):
    """The ladder stops after ``max_attempts`` encodes."""
    engine = make_engine(runner, tmp_path, max_attempts=2)
    source = make_source(tmp_path)
    runner.queue(
        duration_run(120.0), ScriptedRun(returncode=1), ScriptedRun(returncode=2)
    )

    with pytest.raises(EncodeExhaustedError) as exc_info:
        await engine.convert(source)

    assert exc_info.value.attempts == 2
    assert exc_info.value.exit_code == 2
    assert len(runner.calls) == 3


@pytest.mark.unit
@pytest.mark.asyncio
async def test_success_without_output_fails_verification(
    engine: TranscodeEngine, runner: FakeProcessRunner, tmp_path: Path
):
    """ffmpeg exiting 0 without writing the file is a verification failure."""
    source = make_source(tmp_path)
    runner.queue(duration_run(120.0), ScriptedRun())

    with pytest.raises(OutputVerificationFailedError):
        await engine.convert(source)
    assert source.path.exists()


# --- Tests for minimum duration ---


@pytest.mark.unit
@pytest.mark.asyncio
async def test_short_source_is_looped_then_encoded(
    engine: TranscodeEngine, runner: FakeProcessRunner, tmp_path: Path
):
    """A 10s source is looped to 60s; the looped copy is encoded and removed."""
    source = make_source(tmp_path)
    extended = tmp_path / "clip_2160p_60fps.extended.mp4"
    runner.queue(
        duration_run(10.0),
        ScriptedRun(side_effect=touch()),
        ScriptedRun(side_effect=touch(content=b"o" * 500)),
    )

    output = await engine.convert(source)

    loop_cmd, encode_cmd = runner.calls[1], runner.calls[2]
    assert loop_cmd[loop_cmd.index("-t") + 1] == "60"
    assert loop_cmd[-1] == str(extended)
    assert encode_cmd[encode_cmd.index("-i") + 1] == str(extended)
    assert output.path == source.path.with_suffix(".mov")
    assert not extended.exists()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_long_source_is_not_looped(
    engine: TranscodeEngine, runner: FakeProcessRunner, tmp_path: Path
):
    """Sources at or above the minimum duration are encoded directly."""
    source = make_source(tmp_path)
    runner.queue(duration_run(60.0))

    assert await engine.ensure_min_duration(source.path) == source.path
    assert len(runner.calls) == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_loop_failure_raises(
    engine: TranscodeEngine, runner: FakeProcessRunner, tmp_path: Path
):
    """A failed loop aborts the stage."""
    source = make_source(tmp_path)
    runner.queue(duration_run(5.0), ScriptedRun(returncode=1, stderr="boom"))

    with pytest.raises(ExtensionFailedError):
        await engine.convert(source)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_loop_without_output_raises(
    engine: TranscodeEngine, runner: FakeProcessRunner, tmp_path: Path
):
    """A loop that exits 0 but writes nothing aborts the stage."""
    source = make_source(tmp_path)
    runner.queue(duration_run(5.0), ScriptedRun())

    with pytest.raises(ExtensionFailedError):
        await engine.convert(source)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_duration_lookup_failure_is_fatal(
    engine: TranscodeEngine, runner: FakeProcessRunner, tmp_path: Path
):
    """An unreadable duration aborts before any encode."""
    source = make_source(tmp_path)
    runner.queue(ScriptedRun(returncode=1))

    with pytest.raises(DurationProbeFailedError):
        await engine.convert(source)
    assert len(runner.calls) == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_looped_copy_removed_when_encode_exhausts(
    runner: FakeProcessRunner, tmp_path: Path
):
    """The temporary looped copy does not outlive a failed conversion."""
    engine = make_engine(runner, tmp_path, max_attempts=1)
    source = make_source(tmp_path)
    extended = tmp_path / "clip_2160p_60fps.extended.mp4"
    runner.queue(
        duration_run(5.0), ScriptedRun(side_effect=touch()), ScriptedRun(returncode=1)
    )

    with pytest.raises(EncodeExhaustedError):
        await engine.convert(source)

    assert not extended.exists()
    assert source.path.exists()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_looped_copy_removed_when_encode_cancelled(
    engine: TranscodeEngine, runner: FakeProcessRunner, tmp_path: Path
):
    """Cancelling the encode still removes the temporary looped copy."""
    source = make_source(tmp_path)
    extended = tmp_path / "clip_2160p_60fps.extended.mp4"
    runner.queue(
        duration_run(5.0),
        ScriptedRun(side_effect=touch()),
        ScriptedRun(raises=asyncio.CancelledError()),
    )

    with pytest.raises(asyncio.CancelledError):
        await engine.convert(source)

    assert not extended.exists()
    assert source.path.exists()


# --- Tests for source cleanup ---


@pytest.mark.unit
@pytest.mark.asyncio
async def test_small_output_keeps_source(
    engine: TranscodeEngine, runner: FakeProcessRunner, tmp_path: Path
):
    """An output under 10% of the source size never deletes the source."""
    source = make_source(tmp_path, size=100_000)
    runner.queue(
        duration_run(120.0), ScriptedRun(side_effect=touch(content=b"o" * 1024))
    )

    output = await engine.convert(source)

    assert output.size_bytes == 1024
    assert source.path.exists()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_non_mp4_source_is_kept(
    engine: TranscodeEngine, runner: FakeProcessRunner, tmp_path: Path
):
    """Only sources with the download container extension are deleted."""
    source = make_source(tmp_path, name="clip_2160p_60fps.webm")
    runner.queue(duration_run(120.0), ScriptedRun(side_effect=touch()))

    output = await engine.convert(source)

    assert output.path == tmp_path / "clip_2160p_60fps.mov"
    assert source.path.exists()


@pytest.mark.unit
def test_check_source_deletable_reasons(engine: TranscodeEngine, tmp_path: Path):
    """Every unsafe condition is reported as a skip reason."""
    source = SourceMediaFile(path=tmp_path / "a.mp4", size_bytes=1000)
    good = CompliantOutputFile(path=tmp_path / "a.mov", size_bytes=100)

    engine.check_source_deletable(source, good)

    with pytest.raises(CleanupSkippedError, match="not found"):
        engine.check_source_deletable(source, None)
    with pytest.raises(CleanupSkippedError, match="is the converted file"):
        engine.check_source_deletable(
            source, CompliantOutputFile(path=source.path, size_bytes=1000)
        )
    with pytest.raises(CleanupSkippedError, match="smaller than 10%"):
        engine.check_source_deletable(
            source, CompliantOutputFile(path=good.path, size_bytes=99)
        )
    with pytest.raises(CleanupSkippedError, match="extension"):
        engine.check_source_deletable(
            SourceMediaFile(path=tmp_path / "a.mkv", size_bytes=1000), good
        )


# --- Tests for progress logging ---


@pytest.mark.unit
@patch("hevcfetch.transcoder.logger")
def test_progress_logger_logs_each_bucket_once(mock_logger: MagicMock):
    """Progress is logged once per 10% step after the duration header."""
    progress = _EncodeProgressLogger(ConversionAttempt(), clock=lambda: 0.0)
    lines = [
        "  Duration: 00:01:40.00, start: 0.000000, bitrate: 5000 kb/s",
        "frame=1 time=00:00:05.00 speed=1.0x",
        "frame=2 time=00:00:12.00 speed=1.0x",
        "frame=3 time=00:00:15.00 speed=1.0x",
        "frame=4 time=00:00:31.00 speed=1.0x",
    ]

    for line in lines:
        progress.on_line(line)

    messages = [c.args[0] for c in mock_logger.info.call_args_list]
    assert len(messages) == 3
    assert all(m.startswith("Encoding [") for m in messages)
    assert messages[-1].endswith("31.0%")


@pytest.mark.unit
@patch("hevcfetch.transcoder.logger")
def test_progress_logger_silent_without_duration(mock_logger: MagicMock):
    """Without a duration header no percentage can be logged."""
    progress = _EncodeProgressLogger(ConversionAttempt(), clock=lambda: 0.0)

    progress.on_line("frame=1 time=00:00:05.00 speed=1.0x")

    mock_logger.info.assert_not_called()
