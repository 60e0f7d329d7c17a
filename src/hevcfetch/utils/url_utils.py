"""YouTube URL recognition and video id extraction."""

import re

_YOUTUBE_URL_RE = re.compile(
    r"^(https?://)?(www\.|m\.|music\.)?(youtube\.com|youtu\.be)/.+",
    re.IGNORECASE,
)

_VIDEO_ID_PATTERNS = (
    re.compile(r"(?:youtube\.com/watch\?(?:.*&)?v=)([A-Za-z0-9_-]{11})"),
    re.compile(r"(?:youtu\.be/)([A-Za-z0-9_-]{11})"),
    re.compile(r"(?:youtube\.com/(?:embed|shorts|live|v)/)([A-Za-z0-9_-]{11})"),
)


def is_youtube_url(url: str) -> bool:
    """Return True if the URL points at youtube.com or youtu.be."""
    return bool(_YOUTUBE_URL_RE.match(url.strip()))


def extract_video_id(url: str) -> str | None:
    """Extract the 11-character YouTube video id from a URL.

    Args:
        url: A watch, short-link, embed or shorts URL.

    Returns:
        The video id, or None if the URL carries no recognizable id.
    """
    for pattern in _VIDEO_ID_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    return None
