"""Raw stream descriptors from the extraction tool's format catalog."""

from dataclasses import dataclass
from enum import StrEnum


class StreamKind(StrEnum):
    """Classification of a stream by the tracks it carries."""

    VIDEO_ONLY = "video_only"
    AUDIO_ONLY = "audio_only"
    COMBINED = "combined"


def _codec_present(codec: str | None) -> bool:
    return codec is not None and codec != "none"


@dataclass(frozen=True, slots=True)
class StreamDescriptor:
    """One downloadable encoding of a video, as listed by yt-dlp.

    Attributes:
        format_id: Opaque identifier used to request this exact stream.
        ext: Container extension (e.g. ``mp4``, ``webm``, ``m4a``).
        vcodec: Video codec, ``"none"`` or None when there is no video.
        acodec: Audio codec, ``"none"`` or None when there is no audio.
        width: Frame width in pixels.
        height: Frame height in pixels.
        fps: Frame rate.
        tbr: Total bitrate in kbit/s.
        abr: Audio bitrate in kbit/s.
        filesize: Declared or approximate file size in bytes.
    """

    format_id: str
    ext: str
    vcodec: str | None = None
    acodec: str | None = None
    width: int | None = None
    height: int | None = None
    fps: float | None = None
    tbr: float | None = None
    abr: float | None = None
    filesize: int | None = None

    @property
    def has_video(self) -> bool:
        """Return True if the stream carries a video track."""
        return _codec_present(self.vcodec)

    @property
    def has_audio(self) -> bool:
        """Return True if the stream carries an audio track."""
        return _codec_present(self.acodec)

    @property
    def kind(self) -> StreamKind | None:
        """Classify the stream, or None when it carries neither track."""
        match (self.has_video, self.has_audio):
            case (True, True):
                return StreamKind.COMBINED
            case (True, False):
                return StreamKind.VIDEO_ONLY
            case (False, True):
                return StreamKind.AUDIO_ONLY
            case _:
                return None
