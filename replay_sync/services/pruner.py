"""Pruner service for removing stale replay files."""

import asyncio
from pathlib import Path

import structlog

from .filesystem import FileSystemService

log = structlog.stdlib.get_logger()


class PrunerService:
    """Service for deleting replay files no stream refers to anymore."""

    def __init__(self, filesystem: FileSystemService) -> None:
        self._filesystem = filesystem

    async def prune(self, existing_replay_files: list[Path], desired_paths: list[Path]) -> list[Path]:
        """Delete every existing replay file that is not desired.

        Deletions run concurrently. A failure is fatal and files already
        deleted are not restored.

        Args:
            existing_replay_files: Replay files found in the sync directory
            desired_paths: Paths of every replay the streams refer to

        Returns:
            The deleted paths

        Raises:
            PruneError: If any file cannot be deleted
        """
        desired = set(desired_paths)
        to_remove = [path for path in existing_replay_files if path not in desired]

        log.info("Removing stale replays", count=len(to_remove))
        await asyncio.gather(*(self._filesystem.delete_file(path) for path in to_remove))

        for path in to_remove:
            log.debug("Removed replay", filename=path.name)
        return to_remove
