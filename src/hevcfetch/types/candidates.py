"""Ranked candidates derived from stream descriptors, and the final pick."""

from dataclasses import dataclass

from .stream_descriptor import StreamDescriptor, StreamKind


@dataclass(frozen=True, slots=True)
class VideoCandidate:
    """A stream that can supply the video track.

    Attributes:
        format_id: yt-dlp format identifier.
        ext: Container extension.
        vcodec: Video codec name.
        acodec: Audio codec name, if the stream also carries audio.
        width: Frame width in pixels.
        height: Frame height in pixels.
        fps: Frame rate.
        filesize: Declared file size in bytes.
        tbr: Total bitrate in kbit/s.
        kind: Either VIDEO_ONLY or COMBINED.
    """

    format_id: str
    ext: str
    vcodec: str
    acodec: str | None
    width: int | None
    height: int | None
    fps: float | None
    filesize: int | None
    tbr: float | None
    kind: StreamKind

    @classmethod
    def from_descriptor(cls, descriptor: StreamDescriptor) -> "VideoCandidate":
        """Build a candidate from a descriptor that carries video.

        Raises:
            ValueError: If the descriptor has no video track.
        """
        kind = descriptor.kind
        if descriptor.vcodec is None or kind not in (
            StreamKind.VIDEO_ONLY,
            StreamKind.COMBINED,
        ):
            raise ValueError(f"Format {descriptor.format_id} carries no video")
        return cls(
            format_id=descriptor.format_id,
            ext=descriptor.ext,
            vcodec=descriptor.vcodec,
            acodec=descriptor.acodec,
            width=descriptor.width,
            height=descriptor.height,
            fps=descriptor.fps,
            filesize=descriptor.filesize,
            tbr=descriptor.tbr,
            kind=kind,
        )

    @property
    def has_audio(self) -> bool:
        """Return True if this stream carries its own audio track."""
        return self.kind == StreamKind.COMBINED


@dataclass(frozen=True, slots=True)
class AudioCandidate:
    """An audio-only stream.

    Attributes:
        format_id: yt-dlp format identifier.
        ext: Container extension.
        acodec: Audio codec name.
        abr: Audio bitrate in kbit/s.
        filesize: Declared file size in bytes.
    """

    format_id: str
    ext: str
    acodec: str
    abr: float | None
    filesize: int | None

    @classmethod
    def from_descriptor(cls, descriptor: StreamDescriptor) -> "AudioCandidate":
        """Build a candidate from an audio-only descriptor.

        Raises:
            ValueError: If the descriptor is not audio-only.
        """
        if descriptor.acodec is None or descriptor.kind != StreamKind.AUDIO_ONLY:
            raise ValueError(f"Format {descriptor.format_id} is not audio-only")
        return cls(
            format_id=descriptor.format_id,
            ext=descriptor.ext,
            acodec=descriptor.acodec,
            abr=descriptor.abr,
            filesize=descriptor.filesize,
        )

    @property
    def kind(self) -> StreamKind:
        """Audio candidates are always audio-only."""
        return StreamKind.AUDIO_ONLY


@dataclass(frozen=True, slots=True)
class SelectedPair:
    """The streams chosen for download.

    A separate audio stream may only accompany a video-only stream; a
    combined stream is never muxed with another audio pick.

    Attributes:
        video: The chosen video stream.
        audio: The chosen separate audio stream, if any.
    """

    video: VideoCandidate
    audio: AudioCandidate | None = None

    def __post_init__(self) -> None:
        if self.audio is not None and self.video.kind != StreamKind.VIDEO_ONLY:
            raise ValueError(
                "A separate audio stream requires a video-only stream, "
                f"got {self.video.kind} for format {self.video.format_id}"
            )

    @property
    def format_expression(self) -> str:
        """Return the yt-dlp ``-f`` expression for this pair."""
        if self.audio is None:
            return self.video.format_id
        return f"{self.video.format_id}+{self.audio.format_id}"

    @property
    def is_muted(self) -> bool:
        """Return True if the download will carry no audio at all."""
        return self.audio is None and not self.video.has_audio
