"""Helpers for resolving output file system paths."""

import logging
from pathlib import Path
import re

import aiofiles.os

from .config.preferences import FileNamingSettings
from .exceptions import FileOperationError
from .types.candidates import VideoCandidate

logger = logging.getLogger(__name__)

_UNSAFE_TITLE_CHARS = re.compile(r"[^A-Za-z0-9 _-]")
EXTENDED_SUFFIX = ".extended"


class PathManager:
    """Centralized management of file system paths for downloads and outputs.

    A video's filenames are derived from its title and the selected stream's
    resolution, so the same video and pick always map to the same paths.
    That mapping is what allows existing outputs to be detected and reused.

    Attributes:
        _output_dir: Directory receiving downloads and converted files.
        _naming: Filename derivation rules.
        _source_ext: Container the download is merged into.
        _output_ext: Extension of the compliant output.
    """

    def __init__(
        self,
        output_dir: Path,
        naming: FileNamingSettings | None = None,
        source_ext: str = "mp4",
        output_ext: str = "mov",
    ):
        self._output_dir = Path(output_dir)
        self._naming = naming or FileNamingSettings()
        self._source_ext = source_ext.lstrip(".")
        self._output_ext = output_ext.lstrip(".")

    @property
    def output_dir(self) -> Path:
        """Return the directory receiving downloads and converted files."""
        return self._output_dir

    async def ensure_output_dir(self) -> Path:
        """Create the output directory if it doesn't exist.

        Raises:
            FileOperationError: If the directory cannot be created.
        """
        try:
            await aiofiles.os.makedirs(self._output_dir, exist_ok=True)
        except OSError as e:
            raise FileOperationError(
                "Failed to create output directory.",
                file_name=str(self._output_dir),
            ) from e
        return self._output_dir

    def safe_title(self, title: str) -> str:
        """Reduce a title to a filesystem-safe stem.

        Keeps ASCII letters, digits, spaces, ``-`` and ``_``; replaces spaces;
        truncates to the configured length. An empty result becomes ``video``.
        """
        filtered = _UNSAFE_TITLE_CHARS.sub("", title)
        replaced = filtered.replace(" ", self._naming.space_replacement)
        truncated = replaced[: self._naming.max_title_length]
        return truncated or "video"

    def source_filename(self, title: str, video: VideoCandidate) -> str:
        """Return ``{title}_{height}p_{fps}fps.{ext}`` for the download."""
        height = video.height or 0
        fps = int(video.fps) if video.fps is not None else 30
        return f"{self.safe_title(title)}_{height}p_{fps}fps.{self._source_ext}"

    def source_path(self, title: str, video: VideoCandidate) -> Path:
        """Return where the download for this title and pick is stored."""
        return self._output_dir / self.source_filename(title, video)

    def compliant_path_for(self, source_path: Path) -> Path:
        """Return the compliant output path next to a source file."""
        return source_path.with_suffix(f".{self._output_ext}")

    def extended_path_for(self, source_path: Path) -> Path:
        """Return the temporary path for a looped copy of a short source."""
        return source_path.with_suffix(f"{EXTENDED_SUFFIX}{source_path.suffix}")
