"""Descriptive metadata for one remote video."""

from dataclasses import dataclass, field

from .stream_descriptor import StreamDescriptor


@dataclass(frozen=True, slots=True)
class VideoInfo:
    """Metadata and format catalog for a single video.

    Attributes:
        video_id: Extractor-specific identifier.
        title: Video title, ``"Unknown"`` when absent.
        uploader: Channel or uploader name.
        duration: Duration in seconds.
        view_count: Number of views.
        upload_date: Upload date as ``YYYYMMDD``.
        description: Full description text.
        formats: Every stream descriptor the extractor listed.
    """

    video_id: str | None
    title: str
    uploader: str | None = None
    duration: int | None = None
    view_count: int | None = None
    upload_date: str | None = None
    description: str | None = None
    formats: tuple[StreamDescriptor, ...] = field(default_factory=tuple)
