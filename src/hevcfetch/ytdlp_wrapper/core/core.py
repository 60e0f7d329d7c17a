"""Core yt-dlp subprocess operations."""

from dataclasses import dataclass
import json
import logging

from ...exceptions import YtdlpApiError
from ...process_runner import LineHandler, ProcessRunner, StartHandler
from .args import YtdlpArgs
from .info import YtdlpInfo

logger = logging.getLogger(__name__)

_NOT_FOUND_MESSAGE = (
    "yt-dlp executable not found. Please ensure yt-dlp is installed and in PATH."
)


def _format_run_output(stdout: str, stderr: str) -> str:
    """Format stdout and stderr content with section headers."""
    sections: list[str] = []
    if stdout:
        sections.append(f"STDOUT:\n{stdout}")
    if stderr:
        sections.append(f"STDERR:\n{stderr}")
    return "\n\n".join(sections)


@dataclass(frozen=True, slots=True)
class YtdlpRunResult[T]:
    """Container for yt-dlp subprocess payloads and raw log output."""

    payload: T
    logs: str | None


class YtdlpCore:
    """Core yt-dlp operations: metadata extraction and media download.

    Converts process failures into ``YtdlpApiError`` carrying the exit code
    and combined logs.

    Attributes:
        _executable: yt-dlp binary name or path.
        _runner: Subprocess runner.
    """

    def __init__(self, executable: str = "yt-dlp", runner: ProcessRunner | None = None):
        self._executable = executable
        self._runner = runner or ProcessRunner()

    def args(self) -> YtdlpArgs:
        """Return a fresh argument builder for this executable."""
        return YtdlpArgs(self._executable)

    async def extract_info(
        self, args: YtdlpArgs, url: str
    ) -> YtdlpRunResult[YtdlpInfo]:
        """Extract video metadata and the format catalog without downloading.

        Args:
            args: Argument builder, typically carrying cookies.
            url: URL of a single video.

        Returns:
            YtdlpRunResult containing the metadata and raw yt-dlp logs.

        Raises:
            YtdlpApiError: If yt-dlp is missing, fails, or prints no JSON object.
        """
        cmd = [*args.no_warnings().dump_json().no_playlist().to_list(), url]
        logger.debug("Running yt-dlp for metadata extraction", extra={"cmd": cmd})

        try:
            result = await self._runner.run(cmd)
        except FileNotFoundError as e:
            raise YtdlpApiError(message=_NOT_FOUND_MESSAGE, url=url) from e
        except OSError as e:
            raise YtdlpApiError(message="Failed to execute yt-dlp", url=url) from e

        logger.debug(
            "yt-dlp process completed.",
            extra={
                "exit_code": result.returncode,
                "stdout_length": len(result.stdout),
                "stderr_length": len(result.stderr),
            },
        )
        combined_logs = _format_run_output(result.stdout, result.stderr)

        if not result.ok:
            raise YtdlpApiError(
                message=f"yt-dlp completed with error {result.returncode}: {result.stderr.strip()}",
                url=url,
                exit_code=result.returncode,
                logs=combined_logs,
            )

        # one JSON object per line; a single video yields one line
        first_line = next(
            (line for line in result.stdout.splitlines() if line.strip()), ""
        )
        if not first_line:
            raise YtdlpApiError(
                message="yt-dlp did not produce any output",
                url=url,
                exit_code=result.returncode,
                logs=combined_logs,
            )

        try:
            extracted_info = json.loads(first_line)
        except json.JSONDecodeError as e:
            raise YtdlpApiError(
                message="Failed to parse yt-dlp JSON output",
                url=url,
                logs=combined_logs,
            ) from e
        if not isinstance(extracted_info, dict):
            raise YtdlpApiError(
                message="yt-dlp JSON output is not an object",
                url=url,
                logs=combined_logs,
            )

        return YtdlpRunResult(payload=YtdlpInfo(extracted_info), logs=combined_logs)

    async def download(
        self,
        args: YtdlpArgs,
        url: str,
        on_stdout: LineHandler | None = None,
        on_stderr: LineHandler | None = None,
        on_start: StartHandler | None = None,
    ) -> str:
        """Download media from a URL, streaming yt-dlp output line by line.

        Args:
            args: Fully configured argument builder.
            url: URL to download media from.
            on_stdout: Receives each stdout line (progress reports).
            on_stderr: Receives each stderr line.
            on_start: Receives the process handle once yt-dlp is running.

        Returns:
            Combined stdout/stderr log text emitted by yt-dlp.

        Raises:
            YtdlpApiError: If yt-dlp is missing or exits non-zero.
        """
        cmd = [*args.to_list(), url]
        logger.debug("Running yt-dlp for download", extra={"cmd": cmd})

        try:
            result = await self._runner.stream(
                cmd, on_stdout=on_stdout, on_stderr=on_stderr, on_start=on_start
            )
        except FileNotFoundError as e:
            raise YtdlpApiError(message=_NOT_FOUND_MESSAGE, url=url) from e
        except OSError as e:
            raise YtdlpApiError(message="Failed to execute yt-dlp", url=url) from e

        combined_logs = _format_run_output(result.stdout, result.stderr)
        if not result.ok:
            raise YtdlpApiError(
                message=f"Download failed with exit code {result.returncode}: {result.stderr.strip()}",
                url=url,
                exit_code=result.returncode,
                logs=combined_logs or None,
            )
        return combined_logs
