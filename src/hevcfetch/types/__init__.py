from .candidates import AudioCandidate, SelectedPair, VideoCandidate
from .conversion_attempt import ConversionAttempt, EncodeRung
from .media_files import CompliantOutputFile, SourceMediaFile
from .stream_descriptor import StreamDescriptor, StreamKind
from .video_info import VideoInfo

__all__ = [
    "AudioCandidate",
    "CompliantOutputFile",
    "ConversionAttempt",
    "EncodeRung",
    "SelectedPair",
    "SourceMediaFile",
    "StreamDescriptor",
    "StreamKind",
    "VideoCandidate",
    "VideoInfo",
]
