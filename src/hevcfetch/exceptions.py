"""Custom exceptions for the hevcfetch application.

This module defines all custom exception classes used throughout the
application, organized by pipeline stage and providing structured
error information for better debugging and error handling.
"""

from typing import Any


class HevcfetchError(Exception):
    """Base class for application-specific errors."""


class ConfigLoadError(HevcfetchError):
    """Raised when a configuration file fails to load.

    Attributes:
        config_file: Path to the configuration file that failed to load.
    """

    def __init__(
        self,
        message: str,
        config_file: str | None = None,
    ):
        super().__init__(message)
        self.config_file = config_file


class FileOperationError(HevcfetchError):
    """Raised when a filesystem operation fails.

    Attributes:
        file_name: The file name associated with the error.
    """

    def __init__(
        self,
        message: str,
        file_name: str | None = None,
    ):
        super().__init__(message)
        self.file_name = file_name


# --- yt-dlp ---


class YtdlpError(HevcfetchError):
    """Base class for yt-dlp errors."""


class YtdlpDataError(YtdlpError):
    """Raised when yt-dlp data extraction fails."""


class YtdlpFieldMissingError(YtdlpDataError):
    """Raised when a required field is absent.

    Attributes:
        field_name: The name of the missing field.
    """

    def __init__(self, field_name: str):
        super().__init__(f"Missing required field: {field_name}")
        self.field_name = field_name


class YtdlpFieldInvalidError(YtdlpDataError):
    """Raised when a field has an invalid type.

    Attributes:
        field_name: The name of the field with invalid type.
        expected_type: The expected type(s) as a string.
        actual_type: The actual type as a string.
        actual_value: The actual value that caused the error.
    """

    def __init__(
        self,
        field_name: str,
        expected_type: type | tuple[type, ...],
        actual_value: Any,
    ):
        super().__init__("Invalid type for field.")
        self.field_name = field_name
        self.actual_value = actual_value
        self.actual_type = str(type(actual_value).__name__)

        if isinstance(expected_type, tuple):
            self.expected_type = ", ".join(t.__name__ for t in expected_type)
        else:
            self.expected_type = expected_type.__name__


class YtdlpApiError(YtdlpError):
    """Raised when a yt-dlp invocation fails.

    Attributes:
        url: The URL associated with the error.
        exit_code: Process exit code, when the process ran at all.
        logs: Combined stdout/stderr output of the failed run.
    """

    def __init__(
        self,
        message: str,
        url: str | None = None,
        exit_code: int | None = None,
        logs: str | None = None,
    ):
        super().__init__(message)
        self.url = url
        self.exit_code = exit_code
        self.logs = logs


# --- ffmpeg / ffprobe ---


class FFProbeError(HevcfetchError):
    """Raised when ffprobe fails or its output cannot be interpreted.

    Attributes:
        stderr: Diagnostic output captured from ffprobe.
    """

    def __init__(self, message: str, stderr: str | None = None):
        super().__init__(message)
        self.stderr = stderr


class DurationProbeFailedError(FFProbeError):
    """Raised when the duration of a media file cannot be determined."""


class FFmpegError(HevcfetchError):
    """Raised when an ffmpeg invocation fails.

    Attributes:
        stderr: Diagnostic output captured from ffmpeg.
    """

    def __init__(self, message: str, stderr: str | None = None):
        super().__init__(message)
        self.stderr = stderr


class ExtensionFailedError(FFmpegError):
    """Raised when looping a short source up to the minimum duration fails."""


# --- pipeline stages ---


class FormatSelectionError(HevcfetchError):
    """Base class for format selection failures."""


class NoUsableVideoFormatError(FormatSelectionError):
    """Raised when no stream descriptor qualifies as a video candidate.

    Attributes:
        catalog_size: Number of descriptors that were considered.
    """

    def __init__(self, message: str, catalog_size: int = 0):
        super().__init__(message)
        self.catalog_size = catalog_size


class NoUsableAudioFormatError(FormatSelectionError):
    """Raised when every audio fallback strategy failed.

    Not fatal: the pipeline continues with a muted video.
    """


class DownloadFailedError(HevcfetchError):
    """Raised when every download attempt failed.

    Attributes:
        attempts: Number of attempts made.
        last_error: Message of the final attempt's failure, verbatim.
        url: The URL that was being downloaded.
    """

    def __init__(self, attempts: int, last_error: str, url: str | None = None):
        super().__init__(
            f"Download failed after {attempts} attempts. Last error: {last_error}"
        )
        self.attempts = attempts
        self.last_error = last_error
        self.url = url


class DownloadCancelledError(HevcfetchError):
    """Raised when a download was cancelled while in progress.

    Attributes:
        url: The URL that was being downloaded.
    """

    def __init__(self, url: str | None = None):
        super().__init__("Download cancelled")
        self.url = url


class EncodeExhaustedError(HevcfetchError):
    """Raised when every transcode attempt in the fallback ladder failed.

    Attributes:
        attempts: Number of attempts made.
        exit_code: Exit code of the final attempt.
        diagnostics: Full stderr of the final attempt, verbatim.
    """

    def __init__(self, attempts: int, exit_code: int | None, diagnostics: str):
        super().__init__(
            f"HEVC conversion failed after {attempts} attempts with code "
            f"{exit_code}. Last error output:\n{diagnostics}"
        )
        self.attempts = attempts
        self.exit_code = exit_code
        self.diagnostics = diagnostics


class OutputVerificationFailedError(HevcfetchError):
    """Raised when a tool reported success but its artifact is missing.

    Attributes:
        path: The path that was expected to exist.
    """

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


class CleanupSkippedError(HevcfetchError):
    """Raised internally when the source file must be preserved.

    Attributes:
        reason: Why cleanup was skipped.
    """

    def __init__(self, reason: str):
        super().__init__(f"Source cleanup skipped: {reason}")
        self.reason = reason
