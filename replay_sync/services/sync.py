"""Sync service tying the pipeline stages together."""

from pathlib import Path

import structlog

from ..models import SyncReport
from .download_manager import DownloadManagerService
from .pruner import PrunerService
from .reconciler import ReconcilerService
from .stream_fetcher import StreamFetcherService

log = structlog.stdlib.get_logger()


class SyncService:
    """Service running one synchronization of a directory with its streams.

    The run is all-or-nothing: the first error stops it, leaving whatever
    was downloaded so far on disk. Running it again picks up where it
    stopped.
    """

    def __init__(
        self,
        stream_fetcher: StreamFetcherService,
        reconciler: ReconcilerService,
        download_manager: DownloadManagerService,
        pruner: PrunerService,
    ) -> None:
        self._stream_fetcher = stream_fetcher
        self._reconciler = reconciler
        self._download_manager = download_manager
        self._pruner = pruner

    async def run(self, streams: list[str], directory: Path, remove: bool = False) -> SyncReport:
        """Synchronize a directory with the given streams.

        Args:
            streams: Names of the streams to fetch
            directory: The sync directory, created if missing
            remove: Whether to delete replay files no stream refers to

        Returns:
            Summary of the run
        """
        report = SyncReport(streams=list(streams))

        replays = await self._stream_fetcher.fetch_replays(streams)
        report.replays_found = len(replays)

        plan = await self._reconciler.reconcile(replays, directory)

        log.info("Downloading missing replays", count=len(plan.to_download))
        policy = self._download_manager.new_policy()
        try:
            report.downloaded = await self._download_manager.download_all(plan.to_download, directory, policy)
        finally:
            report.rate_limited = policy.engaged

        if remove:
            report.removed = await self._pruner.prune(plan.existing_replay_files, plan.desired_paths)

        log.info(
            "Sync completed",
            replays=report.replays_found,
            downloaded=len(report.downloaded),
            removed=len(report.removed),
        )
        return report
