"""Explicit state for the HEVC encode fallback ladder.

The ladder climbs one rung per failed attempt and never climbs back down:

    HARDWARE  ->  SOFTWARE  ->  SOFTWARE_AAC  ->  SOFTWARE_AAC  -> ...
"""

from dataclasses import dataclass, replace
from enum import StrEnum


class EncodeRung(StrEnum):
    """Encoder configuration used by one encode attempt.

    Attributes:
        HARDWARE: Hardware-accelerated video, audio stream-copied.
        SOFTWARE: Software video, audio stream-copied.
        SOFTWARE_AAC: Software video, audio re-encoded to AAC.
    """

    HARDWARE = "hardware"
    SOFTWARE = "software"
    SOFTWARE_AAC = "software_aac"


_NEXT_RUNG: dict[EncodeRung, EncodeRung] = {
    EncodeRung.HARDWARE: EncodeRung.SOFTWARE,
    EncodeRung.SOFTWARE: EncodeRung.SOFTWARE_AAC,
    EncodeRung.SOFTWARE_AAC: EncodeRung.SOFTWARE_AAC,
}


@dataclass(frozen=True, slots=True)
class ConversionAttempt:
    """State threaded through one transcode invocation.

    Attributes:
        number: 1-based attempt counter.
        rung: Encoder configuration for this attempt.
    """

    number: int = 1
    rung: EncodeRung = EncodeRung.HARDWARE

    @property
    def use_fallback(self) -> bool:
        """Return True when software encoding replaces hardware encoding."""
        return self.rung != EncodeRung.HARDWARE

    @property
    def reencode_audio(self) -> bool:
        """Return True when audio is re-encoded instead of stream-copied."""
        return self.rung == EncodeRung.SOFTWARE_AAC

    def after_failure(self) -> "ConversionAttempt":
        """Return the state for the attempt following a failed one."""
        return replace(self, number=self.number + 1, rung=_NEXT_RUNG[self.rung])

    def is_last(self, max_attempts: int) -> bool:
        """Return True if no further attempt is allowed after this one."""
        return self.number >= max_attempts
