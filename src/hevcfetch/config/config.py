"""Settings model for hevcfetch and the YAML source behind ``config_file``.

``AppSettings`` is read once at startup. Values come from keyword arguments,
``HEVCFETCH_*`` environment variables, a ``.env`` file and, when
``config_file`` resolves to a path, a YAML document.
"""

import logging
from pathlib import Path
from typing import Any, Literal, cast

from pydantic import Field, field_validator
from pydantic.fields import FieldInfo
from pydantic_core import PydanticUndefined
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)
import yaml

from ..exceptions import ConfigLoadError
from .preferences import (
    AudioPreferences,
    ConversionSettings,
    DownloadSettings,
    FileNamingSettings,
    VideoPreferences,
)

logger = logging.getLogger(__name__)

_CONFIG_FILE_FIELD = "config_file"


class YamlConfigFileSource(PydanticBaseSettingsSource):
    """Settings source backed by the YAML file named in ``config_file``.

    The path is looked up in the state accumulated by the sources that ran
    before this one, so it has to be ordered after them.

    Attributes:
        encoding: Text encoding of the YAML file.
        loaded: Mapping read from the file on the last call.
    """

    def __init__(self, settings_cls: type[BaseSettings], encoding: str = "utf-8"):
        super().__init__(settings_cls)
        self.encoding = encoding
        self.loaded: dict[str, Any] = {}

    def _resolved_value(self, field_name: str) -> Any:
        field_info = self.settings_cls.model_fields[field_name]
        keys = [field_name]
        if isinstance(field_info.validation_alias, str):
            keys.append(field_info.validation_alias)
        for key in keys:
            candidate = self.current_state.get(key)
            if candidate not in (None, PydanticUndefined):
                return candidate
        return field_info.get_default()

    def config_path(self) -> Path | None:
        """Return the YAML path to read, or None when no file is configured.

        Raises:
            TypeError: If ``config_file`` holds something other than a path.
        """
        raw = self._resolved_value(_CONFIG_FILE_FIELD)
        logger.debug("Resolving config file path.", extra={"config_file": str(raw)})

        match raw:
            case None:
                return None
            case str() if not raw.strip():
                return None
            case str() | Path():
                return Path(raw).expanduser()
            case _:
                raise TypeError(
                    f"{_CONFIG_FILE_FIELD} must be a path or string, "
                    f"not {type(raw).__name__}"
                )

    def _load(self, path: Path) -> dict[str, Any]:
        with Path.open(path, encoding=self.encoding) as f:
            document = yaml.safe_load(f)

        match document:
            case None:
                logger.info("Config file is empty.", extra={"file_path": str(path)})
                return {}
            case dict():
                return cast(dict[str, Any], document)
            case _:
                raise TypeError(
                    f"Config file must hold a mapping, not {type(document).__name__}"
                )

    def get_field_value(
        self, field: FieldInfo, field_name: str
    ) -> tuple[Any, str, bool]:
        """Return the YAML value for ``field_name``."""
        return self.loaded.get(field_name), field_name, self.field_is_complex(field)

    def __call__(self) -> dict[str, Any]:
        """Read the configured YAML file, if any.

        Raises:
            ConfigLoadError: If the path is malformed or the file cannot be
                read or parsed into a mapping.
        """
        try:
            path = self.config_path()
        except TypeError as e:
            raise ConfigLoadError("Invalid config file path.") from e

        if path is None:
            self.loaded = {}
            return {}

        try:
            self.loaded = self._load(path)
        except (TypeError, OSError, yaml.YAMLError) as e:
            raise ConfigLoadError(
                "Could not load config file.", config_file=str(path)
            ) from e
        logger.debug(
            "Loaded config file.",
            extra={"file_path": str(path), "keys": sorted(self.loaded)},
        )
        return dict(self.loaded)


class AppSettings(BaseSettings):
    """Settings for one hevcfetch run.

    Command-line flags (e.g. ``--url``, ``--download.retry-attempts``) are
    parsed on top when the CLI builds this with ``_cli_parse_args``.

    Attributes:
        url: Video URL to fetch.
        output_dir: Directory for the download and the converted file.
        cookies_path: cookies.txt handed to yt-dlp.
        min_recommended_resolution: Picks below this height log a warning.
        ytdlp_path: yt-dlp executable.
        ffmpeg_path: ffmpeg executable.
        ffprobe_path: ffprobe executable.
        log_format: ``human`` or ``json`` log output.
        log_level: Level name for the ``hevcfetch`` loggers.
        log_include_stacktrace: Print tracebacks instead of error summaries.
        config_file: YAML file with more settings.
        video: Video ranking.
        audio: Audio ranking.
        download: Download stage settings.
        conversion: HEVC target profile and ladder limits.
        file_naming: Filename rules.
    """

    url: str | None = Field(default=None, description="Video URL to fetch.")
    output_dir: Path = Field(
        default=Path("outputs"),
        description="Where downloads and converted files are written.",
    )
    cookies_path: Path | None = Field(
        default=None,
        description="cookies.txt passed to yt-dlp for authenticated requests.",
    )
    min_recommended_resolution: int = Field(
        default=2160,
        ge=1,
        description="Warn when the selected height is below this.",
    )
    ytdlp_path: str = Field(default="yt-dlp", min_length=1)
    ffmpeg_path: str = Field(default="ffmpeg", min_length=1)
    ffprobe_path: str = Field(default="ffprobe", min_length=1)

    log_format: Literal["human", "json"] = Field(
        default="human", description="Log output format."
    )
    log_level: str = Field(default="INFO", description="Log level name.")
    log_include_stacktrace: bool = Field(
        default=False, description="Log full tracebacks for errors."
    )

    config_file: Path | None = Field(
        default=None, description="Optional YAML file with more settings."
    )

    video: VideoPreferences = Field(default_factory=VideoPreferences)
    audio: AudioPreferences = Field(default_factory=AudioPreferences)
    download: DownloadSettings = Field(default_factory=DownloadSettings)
    conversion: ConversionSettings = Field(default_factory=ConversionSettings)
    file_naming: FileNamingSettings = Field(default_factory=FileNamingSettings)

    model_config = SettingsConfigDict(
        env_prefix="HEVCFETCH_",
        env_nested_delimiter="__",
        env_file=".env",
        cli_ignore_unknown_args=True,
        cli_kebab_case=True,
        extra="ignore",
        frozen=True,
    )

    @field_validator("output_dir", mode="before")
    @classmethod
    def expand_output_dir(cls, v: Any) -> Any:
        """Expand ``~`` in the output directory."""
        match v:
            case str() as s if s.strip():
                return Path(s.strip()).expanduser()
            case Path() as p:
                return p.expanduser()
            case _:
                return v

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Order sources so ``config_file`` is known before YAML is read.

        Earlier sources win over later ones.

        Returns:
            Sources in priority order.
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigFileSource(settings_cls),
            file_secret_settings,
        )
