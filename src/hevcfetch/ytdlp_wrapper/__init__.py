from .core import YtdlpArgs, YtdlpCore, YtdlpInfo, YtdlpRunResult

__all__ = ["YtdlpArgs", "YtdlpCore", "YtdlpInfo", "YtdlpRunResult"]
