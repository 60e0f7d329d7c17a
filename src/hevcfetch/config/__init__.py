from .config import AppSettings, YamlConfigFileSource
from .preferences import (
    AudioPreferences,
    ConversionSettings,
    DownloadSettings,
    FileNamingSettings,
    VideoPreferences,
)

__all__ = [
    "AppSettings",
    "AudioPreferences",
    "ConversionSettings",
    "DownloadSettings",
    "FileNamingSettings",
    "VideoPreferences",
    "YamlConfigFileSource",
]
