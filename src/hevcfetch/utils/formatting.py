"""Human-readable rendering of sizes, durations, counts and progress.

These helpers are used when logging metadata, format summaries and
progress. All of them accept missing values and render a placeholder.
"""

_SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")
_BAR_FILLED = "█"
_BAR_EMPTY = "░"


def format_file_size(size_bytes: int | float | None) -> str:
    """Render a byte count with a binary-scaled unit, e.g. ``1.5 GB``."""
    if not size_bytes or size_bytes <= 0:
        return "Unknown size"
    size = float(size_bytes)
    unit_index = 0
    while size >= 1024 and unit_index < len(_SIZE_UNITS) - 1:
        size /= 1024
        unit_index += 1
    if unit_index == 0:
        return f"{int(size)} {_SIZE_UNITS[0]}"
    return f"{size:.2f} {_SIZE_UNITS[unit_index]}"


def format_time(seconds: float | None) -> str:
    """Render a span of seconds as ``1h 02m 03s``, ``2m 03s`` or ``3s``."""
    if seconds is None or seconds < 0:
        return "--"
    total = int(round(seconds))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}h {minutes:02d}m {secs:02d}s"
    if minutes:
        return f"{minutes}m {secs:02d}s"
    return f"{secs}s"


def format_duration(seconds: int | float | None) -> str:
    """Render a media duration as ``H:MM:SS`` or ``M:SS``."""
    if seconds is None or seconds < 0:
        return "Unknown"
    total = int(seconds)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def format_number(value: int | None) -> str:
    """Render an integer with thousands separators, e.g. ``1,234,567``."""
    if value is None:
        return "Unknown"
    return f"{value:,}"


def format_date(date: str | None) -> str:
    """Render a ``YYYYMMDD`` date as ``YYYY-MM-DD``; other input is returned as-is."""
    if not date:
        return "Unknown"
    if len(date) == 8 and date.isdigit():
        return f"{date[:4]}-{date[4:6]}-{date[6:]}"
    return date


def truncate(text: str | None, max_length: int) -> str:
    """Collapse a text to a single line no longer than ``max_length``."""
    if not text:
        return ""
    single_line = " ".join(text.split())
    if len(single_line) <= max_length:
        return single_line
    return single_line[: max(max_length - 3, 0)] + "..."


def render_progress_bar(percentage: float, width: int = 20) -> str:
    """Render a text progress bar, e.g. ``[█████░░░░░] 50.0%``.

    Args:
        percentage: Completed share; clamped to 0-100.
        width: Number of bar cells.

    Returns:
        The rendered bar followed by the percentage.
    """
    clamped = min(max(percentage, 0.0), 100.0)
    filled = int(width * clamped / 100.0)
    bar = _BAR_FILLED * filled + _BAR_EMPTY * (width - filled)
    return f"[{bar}] {clamped:.1f}%"
