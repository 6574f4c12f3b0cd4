"""Reconciler service: remote replays against the local directory."""

import asyncio
from pathlib import Path

import structlog

from ..models import ReplayDescriptor, SyncPlan
from .filesystem import FileSystemService

log = structlog.stdlib.get_logger()


class ReconcilerService:
    """Service for working out what a sync run has to download and remove.

    The local file name is the only link between a remote replay and a
    local file, so no manifest is kept between runs.
    """

    def __init__(self, filesystem: FileSystemService) -> None:
        self._filesystem = filesystem

    async def reconcile(self, replays: list[ReplayDescriptor], directory: Path) -> SyncPlan:
        """Compare replays with the contents of a directory.

        Creates the directory if it does not exist yet.

        Args:
            replays: Deduplicated replay descriptors
            directory: The sync directory

        Returns:
            The desired paths, the replays missing locally and the replay
            files currently in the directory

        Raises:
            DirectoryCreateError: If the directory cannot be created
        """
        self._filesystem.ensure_directory(directory)

        desired_paths = [replay.path_in(directory) for replay in replays]
        exists = await asyncio.gather(*(self._filesystem.exists(path) for path in desired_paths))
        to_download = [replay for replay, present in zip(replays, exists) if not present]

        existing_replay_files = self._filesystem.list_replay_files(directory)

        log.debug(
            "Reconciled directory",
            directory=str(directory),
            desired=len(desired_paths),
            missing=len(to_download),
            existing=len(existing_replay_files),
        )
        return SyncPlan(
            desired_paths=desired_paths,
            to_download=to_download,
            existing_replay_files=existing_replay_files,
        )
