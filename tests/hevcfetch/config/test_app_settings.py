"""Tests for AppSettings loading from kwargs, environment and YAML."""

import os
from pathlib import Path

from pydantic import ValidationError
import pytest
import yaml

from hevcfetch.config import (
    AppSettings,
    ConversionSettings,
    DownloadSettings,
    VideoPreferences,
)
from hevcfetch.exceptions import ConfigLoadError


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Run each test without HEVCFETCH_* variables or a stray .env file."""
    for name in list(os.environ):
        if name.startswith("HEVCFETCH_"):
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)


def write_yaml(path: Path, data: object) -> Path:
    """Dump ``data`` as YAML to ``path``."""
    with Path.open(path, "w", encoding="utf-8") as f:
        yaml.dump(data, f)
    return path


# --- Tests for defaults ---


@pytest.mark.unit
def test_defaults():
    """Defaults describe the 4K/60fps HEVC target."""
    settings = AppSettings()

    assert settings.url is None
    assert settings.output_dir == Path("outputs")
    assert settings.min_recommended_resolution == 2160
    assert settings.video.preferred_formats == ("mp4", "mkv", "webm")
    assert settings.video.preferred_codecs == ("h264", "vp9", "av01")
    assert settings.audio.preferred_formats == ("m4a", "mp3", "webm")
    assert settings.download.retry_attempts == 3
    assert settings.download.convert_to_mov
    assert settings.conversion == ConversionSettings()
    assert settings.conversion.max_attempts == 5
    assert settings.conversion.min_output_ratio == 0.1
    assert settings.file_naming.max_title_length == 50


# --- Tests for environment variables ---


@pytest.mark.unit
def test_env_overrides(monkeypatch: pytest.MonkeyPatch):
    """Prefixed and nested environment variables are applied."""
    monkeypatch.setenv("HEVCFETCH_URL", "https://youtu.be/dQw4w9WgXcQ")
    monkeypatch.setenv("HEVCFETCH_LOG_FORMAT", "json")
    monkeypatch.setenv("HEVCFETCH_DOWNLOAD__RETRY_ATTEMPTS", "5")
    monkeypatch.setenv("HEVCFETCH_CONVERSION__HARDWARE_ENCODER", "hevc_nvenc")
    monkeypatch.setenv("HEVCFETCH_VIDEO__PREFERRED_FORMATS", '["MKV", "mp4"]')

    settings = AppSettings()

    assert settings.url == "https://youtu.be/dQw4w9WgXcQ"
    assert settings.log_format == "json"
    assert settings.download.retry_attempts == 5
    assert settings.conversion.hardware_encoder == "hevc_nvenc"
    assert settings.video.preferred_formats == ("mkv", "mp4")


@pytest.mark.unit
def test_output_dir_expands_home(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """A leading ``~`` in the output directory is expanded."""
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("HEVCFETCH_OUTPUT_DIR", "~/videos")

    assert AppSettings().output_dir == tmp_path / "videos"


# --- Tests for YAML loading ---


@pytest.mark.unit
def test_yaml_file_is_loaded(tmp_path: Path):
    """Sections from the YAML file fill the nested models."""
    config_path = write_yaml(
        tmp_path / "config.yaml",
        {
            "output_dir": str(tmp_path / "out"),
            "video": {"max_resolution": 1080, "prefer_high_fps": False},
            "conversion": {"max_attempts": 2},
        },
    )

    settings = AppSettings(config_file=config_path)

    assert settings.output_dir == tmp_path / "out"
    assert settings.video.max_resolution == 1080
    assert not settings.video.prefer_high_fps
    assert settings.conversion.max_attempts == 2


@pytest.mark.unit
def test_env_beats_yaml(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """Environment variables take precedence over the YAML file."""
    config_path = write_yaml(tmp_path / "config.yaml", {"log_level": "DEBUG"})
    monkeypatch.setenv("HEVCFETCH_CONFIG_FILE", str(config_path))
    monkeypatch.setenv("HEVCFETCH_LOG_LEVEL", "WARNING")

    settings = AppSettings()

    assert settings.config_file == config_path
    assert settings.log_level == "WARNING"


@pytest.mark.unit
def test_empty_yaml_file_uses_defaults(tmp_path: Path):
    """An empty YAML file contributes nothing."""
    config_path = tmp_path / "empty.yaml"
    config_path.write_text("")

    assert AppSettings(config_file=config_path).download == DownloadSettings()


@pytest.mark.unit
def test_missing_yaml_file_raises(tmp_path: Path):
    """A named but missing YAML file is a configuration error."""
    with pytest.raises(ConfigLoadError) as exc_info:
        AppSettings(config_file=tmp_path / "missing.yaml")
    assert exc_info.value.config_file == str(tmp_path / "missing.yaml")


@pytest.mark.unit
def test_non_mapping_yaml_raises(tmp_path: Path):
    """A YAML document that is not a mapping is rejected."""
    config_path = write_yaml(tmp_path / "list.yaml", ["a", "b"])

    with pytest.raises(ConfigLoadError):
        AppSettings(config_file=config_path)


# --- Tests for validation ---


@pytest.mark.unit
def test_name_lists_accept_comma_separated_strings():
    """Container and codec lists may be given as comma-separated text."""
    prefs = VideoPreferences(
        preferred_formats=" MP4, webm ,",  # type: ignore[arg-type]
        preferred_codecs="VP9",  # type: ignore[arg-type]
    )

    assert prefs.preferred_formats == ("mp4", "webm")
    assert prefs.preferred_codecs == ("vp9",)


@pytest.mark.unit
@pytest.mark.parametrize(
    "kwargs",
    [
        {"download": {"retry_attempts": 0}},
        {"conversion": {"max_attempts": 0}},
        {"conversion": {"min_output_ratio": 1.5}},
        {"video": {"preferred_formats": []}},
        {"log_format": "xml"},
    ],
)
def test_invalid_values_rejected(kwargs: dict[str, object]):
    """Out-of-range values fail validation."""
    with pytest.raises(ValidationError):
        AppSettings(**kwargs)  # type: ignore[arg-type]


@pytest.mark.unit
def test_settings_are_frozen():
    """Settings cannot be mutated after loading."""
    settings = AppSettings()
    with pytest.raises(ValidationError):
        settings.url = "https://youtu.be/dQw4w9WgXcQ"  # type: ignore[misc]
