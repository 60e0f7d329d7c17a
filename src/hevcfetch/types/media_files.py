"""Files produced and consumed by the pipeline stages."""

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class SourceMediaFile:
    """A media file resident on disk, awaiting conversion.

    Attributes:
        path: Location of the file.
        size_bytes: File size at the time it was inspected.
        owner_uid: Owning user id, when the platform reports one.
        freshly_downloaded: False when the file was found by an existence check.
    """

    path: Path
    size_bytes: int
    owner_uid: int | None = None
    freshly_downloaded: bool = True

    @property
    def ext(self) -> str:
        """Return the file extension without the leading dot."""
        return self.path.suffix.lstrip(".").lower()


@dataclass(frozen=True, slots=True)
class CompliantOutputFile:
    """The fixed-profile HEVC deliverable.

    Attributes:
        path: Location of the converted file.
        size_bytes: File size after conversion.
        reused: True when the file already existed and no encode ran.
    """

    path: Path
    size_bytes: int
    reused: bool = False
