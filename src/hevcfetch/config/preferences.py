"""Nested configuration sections for format ranking, download and conversion.

Each section is an immutable pydantic model. The pipeline reads these once
per run and never mutates them.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _normalize_names(v: Any) -> Any:
    """Lowercase and strip a list of container/codec names."""
    if isinstance(v, str):
        v = v.split(",")
    if isinstance(v, list | tuple):
        return tuple(str(item).strip().lower() for item in v if str(item).strip())
    return v


class VideoPreferences(BaseModel):
    """Ranking configuration for video stream selection.

    Attributes:
        preferred_formats: Container extensions in preference order.
        preferred_codecs: Codec name fragments in preference order.
        max_resolution: Highest vertical resolution that may be selected.
        prefer_high_fps: Whether a higher frame rate outranks codec choice.
    """

    model_config = ConfigDict(frozen=True)

    preferred_formats: tuple[str, ...] = Field(
        default=("mp4", "mkv", "webm"),
        min_length=1,
        description="Video containers in preference order.",
    )
    preferred_codecs: tuple[str, ...] = Field(
        default=("h264", "vp9", "av01"),
        description="Video codec fragments in preference order, matched by substring.",
    )
    max_resolution: int = Field(
        default=2160,
        ge=1,
        description="Maximum vertical resolution (e.g. 2160 for 4K).",
    )
    prefer_high_fps: bool = Field(
        default=True,
        description="Prefer higher frame rates when candidates differ by more than 0.1 fps.",
    )

    @field_validator("preferred_formats", "preferred_codecs", mode="before")
    @classmethod
    def normalize_names(cls, v: Any) -> Any:
        """Accept comma-separated strings and lowercase every entry."""
        return _normalize_names(v)


class AudioPreferences(BaseModel):
    """Ranking configuration for audio stream selection.

    Attributes:
        preferred_formats: Container extensions in preference order.
        preferred_codecs: Codec name fragments in preference order.
    """

    model_config = ConfigDict(frozen=True)

    preferred_formats: tuple[str, ...] = Field(
        default=("m4a", "mp3", "webm"),
        min_length=1,
        description="Audio containers in preference order.",
    )
    preferred_codecs: tuple[str, ...] = Field(
        default=("aac", "mp3", "opus"),
        description="Audio codec fragments in preference order, matched by substring.",
    )

    @field_validator("preferred_formats", "preferred_codecs", mode="before")
    @classmethod
    def normalize_names(cls, v: Any) -> Any:
        """Accept comma-separated strings and lowercase every entry."""
        return _normalize_names(v)


class DownloadSettings(BaseModel):
    """Settings for the yt-dlp download stage.

    Attributes:
        retry_attempts: Total number of download attempts.
        retry_delay_seconds: Fixed delay between attempts.
        merge_output_format: Container yt-dlp merges separate streams into.
        embed_subtitles: Pass ``--embed-subs`` to yt-dlp.
        embed_thumbnail: Pass ``--embed-thumbnail`` to yt-dlp.
        convert_to_mov: Run the transcode stage after downloading.
    """

    model_config = ConfigDict(frozen=True)

    retry_attempts: int = Field(default=3, ge=1)
    retry_delay_seconds: float = Field(default=2.0, ge=0)
    merge_output_format: str = Field(default="mp4", min_length=1)
    embed_subtitles: bool = False
    embed_thumbnail: bool = False
    convert_to_mov: bool = True


class ConversionSettings(BaseModel):
    """Target profile and fallback limits for the HEVC transcode stage.

    Attributes:
        max_attempts: Maximum encode attempts across the fallback ladder.
        min_duration_seconds: Sources shorter than this are looped first.
        min_output_ratio: Output must be at least this fraction of the source
            size before the source may be deleted.
        target_width: Output width in pixels.
        target_height: Output height in pixels.
        target_fps: Forced output frame rate.
        video_bitrate: Target video bitrate (ffmpeg ``-b:v``).
        max_bitrate: Bitrate ceiling (ffmpeg ``-maxrate``).
        buffer_size: Rate control buffer (ffmpeg ``-bufsize``).
        hardware_encoder: Hardware-accelerated HEVC encoder name.
        software_encoder: Software HEVC encoder name.
        pixel_format: Output pixel format.
        output_extension: Extension of the compliant output file.
    """

    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(default=5, ge=1)
    min_duration_seconds: float = Field(default=60.0, gt=0)
    min_output_ratio: float = Field(default=0.1, ge=0, le=1)
    target_width: int = Field(default=3840, ge=1)
    target_height: int = Field(default=2160, ge=1)
    target_fps: int = Field(default=60, ge=1)
    video_bitrate: str = "50M"
    max_bitrate: str = "60M"
    buffer_size: str = "100M"
    hardware_encoder: str = "hevc_videotoolbox"
    software_encoder: str = "libx265"
    pixel_format: str = "yuv420p10le"
    output_extension: str = Field(default="mov", min_length=1)


class FileNamingSettings(BaseModel):
    """Rules for deriving output filenames from video titles.

    Attributes:
        max_title_length: Titles are truncated to this many characters.
        space_replacement: Replacement for spaces in titles.
    """

    model_config = ConfigDict(frozen=True)

    max_title_length: int = Field(default=50, ge=1)
    space_replacement: str = "_"
