from .args import YtdlpArgs
from .core import YtdlpCore, YtdlpRunResult
from .info import YtdlpInfo

__all__ = [
    "YtdlpArgs",
    "YtdlpCore",
    "YtdlpInfo",
    "YtdlpRunResult",
]
