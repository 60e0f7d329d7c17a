import asyncio
import contextlib
import sys

from .cli import main_cli


def main() -> None:
    """Entry point for the hevcfetch CLI application."""
    exit_code = 0
    with contextlib.suppress(KeyboardInterrupt):
        exit_code = asyncio.run(main_cli())
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
