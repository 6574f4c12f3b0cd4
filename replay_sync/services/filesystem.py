"""File system service for the sync directory."""

import asyncio
from pathlib import Path

import structlog

from ..errors import DirectoryCreateError, DownloadWriteError, FileSystemError, PruneError
from ..models import REPLAY_EXTENSIONS

log = structlog.stdlib.get_logger()


class FileSystemService:
    """Service for the file operations of a sync run.

    Blocking calls run in worker threads so that callers can gather many
    of them at once.
    """

    def ensure_directory(self, path: Path) -> None:
        """Ensure that a directory exists, creating it if necessary.

        Args:
            path: Directory path to ensure exists

        Raises:
            DirectoryCreateError: If the path is not a directory or cannot be created
        """
        try:
            if path.exists():
                if not path.is_dir():
                    log.error("Path exists but is not a directory", path=str(path))
                    raise NotADirectoryError(f"Path exists but is not a directory: {path}")
                return

            log.debug("Creating directory", path=str(path))
            path.mkdir(parents=True, exist_ok=True)
            log.info("Directory created", path=str(path))

        except OSError as e:
            log.error("Failed to create directory", path=str(path), error=str(e))
            raise DirectoryCreateError(str(path), cause=e) from e

    async def exists(self, path: Path) -> bool:
        """Check whether a path exists without blocking the event loop."""
        return await asyncio.to_thread(path.exists)

    def list_replay_files(self, directory: Path) -> list[Path]:
        """List replay files directly inside a directory.

        Only regular files whose extension is exactly ``.ttr`` or ``.ttrm``
        are returned; the match is case-sensitive.

        Raises:
            FileSystemError: If the directory cannot be read
        """
        try:
            files = sorted(
                entry for entry in directory.iterdir()
                if entry.suffix in REPLAY_EXTENSIONS and entry.is_file()
            )
        except OSError as e:
            log.error("Failed to list directory", directory=str(directory), error=str(e))
            raise FileSystemError(f"Failed to list directory {directory}", path=str(directory), cause=e) from e
        log.debug("Listed replay files", directory=str(directory), count=len(files))
        return files

    async def write_file(self, path: Path, content: bytes) -> None:
        """Write content to a path, replacing any existing file.

        Raises:
            DownloadWriteError: If the file cannot be written
        """
        try:
            await asyncio.to_thread(_write_bytes, path, content)
        except OSError as e:
            log.error("Failed to write file", path=str(path), error=str(e))
            raise DownloadWriteError(str(path), cause=e) from e

    async def delete_file(self, path: Path) -> None:
        """Delete a file.

        Raises:
            PruneError: If the file cannot be deleted
        """
        try:
            await asyncio.to_thread(path.unlink)
        except OSError as e:
            log.error("Failed to delete file", path=str(path), error=str(e))
            raise PruneError(str(path), cause=e) from e
        log.debug("File deleted", path=str(path))


def _write_bytes(path: Path, content: bytes) -> None:
    with open(path, "wb") as f:
        f.write(content)
