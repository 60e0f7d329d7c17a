"""File system management for downloaded and converted media.

This module provides the FileManager class for the filesystem operations the
pipeline needs: existence checks, collision-free naming, inspection,
permission repair and deletion. It does not create media files; that is done
by yt-dlp and ffmpeg.
"""

import asyncio
import logging
import os
from pathlib import Path

import aiofiles.os

from .exceptions import FileOperationError
from .types.media_files import SourceMediaFile

logger = logging.getLogger(__name__)

# rw-rw-r--
SHARED_FILE_MODE = 0o664


class FileManager:
    """Manage media files on the filesystem."""

    async def file_exists(self, path: Path) -> bool:
        """Check whether ``path`` exists and is a regular file.

        Raises:
            FileOperationError: If the existence check itself fails.
        """
        try:
            return await aiofiles.os.path.isfile(path)
        except OSError as e:
            raise FileOperationError(
                "Failed to check if file exists.", file_name=str(path)
            ) from e

    async def file_size(self, path: Path) -> int:
        """Return the size of ``path`` in bytes.

        Raises:
            FileNotFoundError: If the file does not exist.
            FileOperationError: If the file cannot be inspected.
        """
        try:
            return (await aiofiles.os.stat(path)).st_size
        except FileNotFoundError:
            raise
        except OSError as e:
            raise FileOperationError(
                "Failed to read file size.", file_name=str(path)
            ) from e

    async def unique_path(self, path: Path) -> Path:
        """Return ``path``, or the first free ``stem_N.ext`` sibling if it is taken.

        Args:
            path: The desired path.

        Returns:
            A path that does not currently exist.
        """
        if not await aiofiles.os.path.exists(path):
            return path

        counter = 1
        while True:
            candidate = path.with_name(f"{path.stem}_{counter}{path.suffix}")
            if not await aiofiles.os.path.exists(candidate):
                logger.info(
                    "Destination exists; using a numbered filename.",
                    extra={"requested_path": str(path), "file_path": str(candidate)},
                )
                return candidate
            counter += 1

    async def inspect_media_file(
        self, path: Path, freshly_downloaded: bool
    ) -> SourceMediaFile:
        """Stat a media file and describe it.

        Raises:
            FileNotFoundError: If the file does not exist.
            FileOperationError: If the file cannot be inspected.
        """
        try:
            stat_result = await aiofiles.os.stat(path)
        except FileNotFoundError:
            raise
        except OSError as e:
            raise FileOperationError(
                "Failed to inspect media file.", file_name=str(path)
            ) from e
        return SourceMediaFile(
            path=path,
            size_bytes=stat_result.st_size,
            owner_uid=getattr(stat_result, "st_uid", None),
            freshly_downloaded=freshly_downloaded,
        )

    async def fix_permissions(self, path: Path) -> bool:
        """Make a file group-writable and world-readable, best effort.

        Args:
            path: File to adjust.

        Returns:
            True if the mode was changed, False if the change failed.
        """
        try:
            await asyncio.to_thread(os.chmod, path, SHARED_FILE_MODE)
        except OSError as e:
            logger.warning(
                "Failed to fix file permissions.",
                extra={"file_path": str(path), "mode": oct(SHARED_FILE_MODE)},
                exc_info=e,
            )
            return False
        logger.debug(
            "File permissions fixed.",
            extra={"file_path": str(path), "mode": oct(SHARED_FILE_MODE)},
        )
        return True

    async def delete_file(self, path: Path) -> None:
        """Delete a file.

        Raises:
            PermissionError: If the process may not delete the file.
            FileOperationError: If any other OS-level error occurs.
        """
        try:
            await aiofiles.os.remove(path)
        except PermissionError:
            raise
        except OSError as e:
            raise FileOperationError(
                "Failed to delete file.", file_name=str(path)
            ) from e
        logger.debug("File deleted.", extra={"file_path": str(path)})

    async def delete_with_permission_repair(self, path: Path) -> None:
        """Delete a file, repairing its permissions and retrying once if denied.

        Raises:
            FileOperationError: If the file still cannot be deleted.
        """
        try:
            await self.delete_file(path)
            return
        except PermissionError:
            logger.info(
                "Permission denied deleting file; fixing permissions and retrying.",
                extra={"file_path": str(path)},
            )

        await self.fix_permissions(path)
        try:
            await self.delete_file(path)
        except PermissionError as e:
            raise FileOperationError(
                "Permission denied deleting file after permission repair.",
                file_name=str(path),
            ) from e
