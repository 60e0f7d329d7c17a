"""Pick the best video stream and a matching audio stream from a format catalog.

Selection is a pure function of the catalog and the ranking preferences.
Video is chosen first; audio is only chosen when the video stream carries no
audio of its own, trying these strategies in order:

(a) an audio-only stream in a preferred container, ranked by container,
    bitrate, then codec
(b) a combined audio+video stream at the chosen height, replacing the video pick
(c) any audio-only stream, ranked by bitrate alone

When every strategy fails the result is a muted video-only pick.
"""

from collections.abc import Iterable, Sequence
import functools
import logging

from .config.preferences import AudioPreferences, VideoPreferences
from .exceptions import NoUsableAudioFormatError, NoUsableVideoFormatError
from .types.candidates import AudioCandidate, SelectedPair, VideoCandidate
from .types.stream_descriptor import StreamDescriptor, StreamKind

logger = logging.getLogger(__name__)

# Frame rate assumed for ranking when a stream does not declare one.
DEFAULT_FPS = 30.0
_FPS_TOLERANCE = 0.1


def _position(value: str, preferred: Sequence[str]) -> int:
    """Rank of ``value`` in ``preferred``; unlisted values rank last."""
    try:
        return preferred.index(value.lower())
    except ValueError:
        return len(preferred)


def _codec_position(codec: str | None, preferred: Sequence[str]) -> int:
    """Rank of the first preferred codec fragment contained in ``codec``."""
    if codec:
        lowered = codec.lower()
        for index, fragment in enumerate(preferred):
            if fragment in lowered:
                return index
    return len(preferred)


def _compare_video(
    a: VideoCandidate, b: VideoCandidate, prefs: VideoPreferences
) -> int:
    """Order two video candidates, best first."""
    a_container = _position(a.ext, prefs.preferred_formats)
    b_container = _position(b.ext, prefs.preferred_formats)
    if a_container != b_container:
        return a_container - b_container

    if prefs.prefer_high_fps:
        a_fps = a.fps if a.fps is not None else DEFAULT_FPS
        b_fps = b.fps if b.fps is not None else DEFAULT_FPS
        if abs(a_fps - b_fps) > _FPS_TOLERANCE:
            return -1 if a_fps > b_fps else 1

    a_codec = _codec_position(a.vcodec, prefs.preferred_codecs)
    b_codec = _codec_position(b.vcodec, prefs.preferred_codecs)
    if a_codec != b_codec:
        return a_codec - b_codec

    return (b.filesize or 0) - (a.filesize or 0)


def _compare_audio(
    a: AudioCandidate, b: AudioCandidate, prefs: AudioPreferences
) -> int:
    """Order two audio candidates, best first."""
    a_container = _position(a.ext, prefs.preferred_formats)
    b_container = _position(b.ext, prefs.preferred_formats)
    if a_container != b_container:
        return a_container - b_container

    a_abr = a.abr or 0.0
    b_abr = b.abr or 0.0
    if a_abr != b_abr:
        return -1 if a_abr > b_abr else 1

    return _codec_position(a.acodec, prefs.preferred_codecs) - _codec_position(
        b.acodec, prefs.preferred_codecs
    )


def _best_video(
    candidates: Iterable[VideoCandidate], prefs: VideoPreferences
) -> VideoCandidate | None:
    ranked = sorted(
        candidates,
        key=functools.cmp_to_key(lambda a, b: _compare_video(a, b, prefs)),
    )
    return ranked[0] if ranked else None


def video_candidates(
    descriptors: Iterable[StreamDescriptor], prefs: VideoPreferences
) -> list[VideoCandidate]:
    """Return every descriptor with a video track in a preferred container."""
    return [
        VideoCandidate.from_descriptor(d)
        for d in descriptors
        if d.has_video and d.ext.lower() in prefs.preferred_formats
    ]


def audio_candidates(
    descriptors: Iterable[StreamDescriptor],
    prefs: AudioPreferences | None = None,
) -> list[AudioCandidate]:
    """Return audio-only descriptors, optionally limited to preferred containers."""
    return [
        AudioCandidate.from_descriptor(d)
        for d in descriptors
        if d.kind == StreamKind.AUDIO_ONLY
        and (prefs is None or d.ext.lower() in prefs.preferred_formats)
    ]


def target_height(
    candidates: Sequence[VideoCandidate], max_resolution: int
) -> int | None:
    """Return min(highest declared height, ``max_resolution``), or None."""
    heights = [c.height for c in candidates if c.height is not None]
    if not heights:
        return None
    return min(max(heights), max_resolution)


def _narrow_to_height(
    candidates: list[VideoCandidate], target: int | None
) -> list[VideoCandidate]:
    """Keep the candidates at ``target``, falling back to every ranked candidate."""
    if target is None:
        return candidates

    exact = [c for c in candidates if c.height == target]
    if exact:
        return exact

    with_height = [c for c in candidates if c.height is not None]
    logger.info(
        "No stream at target resolution; ranking all remaining streams.",
        extra={"target_height": target},
    )
    return with_height or candidates


def select_video(
    descriptors: Sequence[StreamDescriptor], prefs: VideoPreferences
) -> VideoCandidate:
    """Choose the best video stream.

    Args:
        descriptors: The full format catalog.
        prefs: Video ranking preferences.

    Returns:
        The winning candidate.

    Raises:
        NoUsableVideoFormatError: When no descriptor qualifies.
    """
    candidates = video_candidates(descriptors, prefs)
    if not candidates:
        raise NoUsableVideoFormatError(
            "No suitable video formats found", catalog_size=len(descriptors)
        )

    target = target_height(candidates, prefs.max_resolution)
    logger.debug(
        "Selecting video stream.",
        extra={
            "available_heights": sorted(
                {c.height for c in candidates if c.height is not None}, reverse=True
            ),
            "target_height": target,
        },
    )

    best = _best_video(_narrow_to_height(candidates, target), prefs)
    if best is None:
        raise NoUsableVideoFormatError(
            "No suitable video formats found", catalog_size=len(descriptors)
        )
    return best


def select_audio(
    descriptors: Sequence[StreamDescriptor],
    video: VideoCandidate,
    video_prefs: VideoPreferences,
    audio_prefs: AudioPreferences,
) -> SelectedPair:
    """Pair a video-only stream with audio using the fallback strategies.

    Raises:
        NoUsableAudioFormatError: When no strategy yields audio.
    """
    preferred = audio_candidates(descriptors, audio_prefs)
    if preferred:
        best_audio = sorted(
            preferred,
            key=functools.cmp_to_key(lambda a, b: _compare_audio(a, b, audio_prefs)),
        )[0]
        return SelectedPair(video=video, audio=best_audio)

    combined = [
        c
        for c in video_candidates(descriptors, video_prefs)
        if c.kind == StreamKind.COMBINED and c.height == video.height
    ]
    best_combined = _best_video(combined, video_prefs)
    if best_combined is not None:
        logger.info(
            "No preferred audio-only streams; using a combined audio+video stream.",
            extra={"format_id": best_combined.format_id},
        )
        return SelectedPair(video=best_combined)

    any_audio = audio_candidates(descriptors)
    if any_audio:
        fallback = max(any_audio, key=lambda a: a.abr or 0.0)
        logger.info(
            "Using an audio-only stream outside the preferred containers.",
            extra={"format_id": fallback.format_id, "ext": fallback.ext},
        )
        return SelectedPair(video=video, audio=fallback)

    raise NoUsableAudioFormatError("No usable audio stream found")


def select_formats(
    descriptors: Sequence[StreamDescriptor],
    video_prefs: VideoPreferences,
    audio_prefs: AudioPreferences,
) -> SelectedPair:
    """Select the streams to download for one video.

    Args:
        descriptors: The full format catalog.
        video_prefs: Video ranking preferences.
        audio_prefs: Audio ranking preferences.

    Returns:
        The chosen pair. A pair with no audio at all is a valid result.

    Raises:
        NoUsableVideoFormatError: When no descriptor qualifies as video.
    """
    video = select_video(descriptors, video_prefs)
    if video.has_audio:
        logger.debug(
            "Selected video stream carries its own audio.",
            extra={"format_id": video.format_id},
        )
        return SelectedPair(video=video)

    try:
        return select_audio(descriptors, video, video_prefs, audio_prefs)
    except NoUsableAudioFormatError as e:
        logger.warning(
            "Proceeding with a video-only download (no audio).",
            extra={"video_format_id": video.format_id},
            exc_info=e,
        )
        return SelectedPair(video=video)
