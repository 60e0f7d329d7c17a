"""Builder for yt-dlp command-line arguments."""

from pathlib import Path


class YtdlpArgs:
    """Builder for yt-dlp command-line arguments.

    Flags are emitted in a fixed order regardless of the order the builder
    methods were called in. User-provided arguments are placed right after
    the executable.

    Example:
        args = (YtdlpArgs("yt-dlp")
                .format("137+140")
                .output("/videos/clip.mp4")
                .merge_output_format("mp4")
                .progress()
                .newline())
    """

    def __init__(self, executable: str = "yt-dlp", user_args: list[str] | None = None):
        self._executable = executable
        self._additional_args = list(user_args or [])

        # Output control
        self._quiet = False
        self._no_warnings = False
        self._dump_json = False
        self._no_playlist = False

        # Format and output
        self._format: str | None = None
        self._output: str | None = None
        self._merge_output_format: str | None = None

        # Progress reporting
        self._progress = False
        self._newline = False

        # Post-processing
        self._embed_subs = False
        self._embed_thumbnail = False

        # Authentication
        self._cookies: Path | None = None

    def quiet(self) -> "YtdlpArgs":
        """Enable quiet mode (suppress verbose output)."""
        self._quiet = True
        return self

    def no_warnings(self) -> "YtdlpArgs":
        """Suppress warning messages."""
        self._no_warnings = True
        return self

    def dump_json(self) -> "YtdlpArgs":
        """Output metadata as JSON without downloading."""
        self._dump_json = True
        return self

    def no_playlist(self) -> "YtdlpArgs":
        """Treat a watch URL that also names a playlist as a single video."""
        self._no_playlist = True
        return self

    def format(self, expression: str) -> "YtdlpArgs":
        """Select the streams to download (e.g. ``"137+140"``)."""
        self._format = expression
        return self

    def output(self, template: str) -> "YtdlpArgs":
        """Set the output path or filename template."""
        self._output = template
        return self

    def merge_output_format(self, container: str) -> "YtdlpArgs":
        """Set the container separate video and audio streams are merged into."""
        self._merge_output_format = container
        return self

    def progress(self) -> "YtdlpArgs":
        """Force progress output even when not attached to a terminal."""
        self._progress = True
        return self

    def newline(self) -> "YtdlpArgs":
        """Print each progress update on its own line."""
        self._newline = True
        return self

    def embed_subs(self, enabled: bool = True) -> "YtdlpArgs":
        """Embed subtitles into the downloaded file."""
        self._embed_subs = enabled
        return self

    def embed_thumbnail(self, enabled: bool = True) -> "YtdlpArgs":
        """Embed the thumbnail as cover art."""
        self._embed_thumbnail = enabled
        return self

    def cookies(self, path: Path | None) -> "YtdlpArgs":
        """Set path to cookies file for authentication."""
        self._cookies = path
        return self

    def extend_args(self, args: list[str]) -> "YtdlpArgs":
        """Add additional raw arguments."""
        self._additional_args.extend(args)
        return self

    @property
    def additional_args(self) -> list[str]:
        """Get a copy of the user-provided arguments."""
        return self._additional_args.copy()

    def to_list(self) -> list[str]:
        """Convert arguments to a complete command list for subprocess execution.

        Returns:
            Complete command list including the yt-dlp executable.
        """
        cmd = [self._executable, *self._additional_args]

        # Output control
        if self._quiet:
            cmd.append("--quiet")
        if self._no_warnings:
            cmd.append("--no-warnings")
        if self._dump_json:
            cmd.append("--dump-json")
        if self._no_playlist:
            cmd.append("--no-playlist")

        # Format and output
        if self._format is not None:
            cmd.extend(["-f", self._format])
        if self._output is not None:
            cmd.extend(["-o", self._output])
        if self._merge_output_format is not None:
            cmd.extend(["--merge-output-format", self._merge_output_format])

        # Progress reporting
        if self._progress:
            cmd.append("--progress")
        if self._newline:
            cmd.append("--newline")

        # Post-processing
        if self._embed_subs:
            cmd.append("--embed-subs")
        if self._embed_thumbnail:
            cmd.append("--embed-thumbnail")

        # Authentication
        if self._cookies is not None:
            cmd.extend(["--cookies", str(self._cookies)])

        return cmd

    def __str__(self) -> str:
        return " ".join(self.to_list())
