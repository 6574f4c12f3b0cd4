"""Download manager service for fetching replays from the content service."""

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path

import httpx
import structlog

from ..errors import DownloadHttpError, DownloadTransportError
from ..models import ReplayDescriptor
from .filesystem import FileSystemService
from .http_client import HttpClientService

log = structlog.stdlib.get_logger()


TOO_MANY_REQUESTS = 429

Sleep = Callable[[float], Awaitable[None]]


class BackoffPolicy:
    """Fixed-delay backoff for a content service that answers 429.

    Once the service has rate limited a request, every later attempt in the
    same run waits ``delay`` seconds first, including attempts for other
    replays. The delay never grows and the policy is never reset; a new
    policy is created for each run.
    """

    def __init__(self, delay: float = 5.0, sleep: Sleep = asyncio.sleep) -> None:
        self.delay = delay
        self.engaged = False
        self._sleep = sleep

    async def wait(self) -> None:
        """Sleep before an attempt if the service has rate limited us."""
        if self.engaged:
            log.debug("Waiting before request", delay=self.delay)
            await self._sleep(self.delay)

    def rate_limited(self, replay_id: str) -> None:
        """Record a 429 answer from the content service."""
        if self.engaged:
            log.warning("Content service returned 429", replay_id=replay_id)
        else:
            self.engaged = True
            log.warning(
                "Content service returned 429 - adding a delay",
                replay_id=replay_id,
                delay=self.delay,
            )


class DownloadManagerService:
    """Service for downloading replays one at a time.

    The content service does not tolerate concurrent requests, so downloads
    are never overlapped.
    """

    def __init__(
        self,
        http_client: HttpClientService,
        filesystem: FileSystemService,
        content_base_url: str,
        rate_limit_delay: float = 5.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """Initialize the download manager service.

        Args:
            http_client: HTTP client for making download requests
            filesystem: File system service for writing replays
            content_base_url: Base URL of the content service
            rate_limit_delay: Delay in seconds between attempts once rate limited
            sleep: Coroutine used for waiting, replaced in tests
        """
        self._http_client = http_client
        self._filesystem = filesystem
        self._content_base_url = content_base_url
        self._rate_limit_delay = rate_limit_delay
        self._sleep = sleep

    def new_policy(self) -> BackoffPolicy:
        """Create the backoff policy for one sync run."""
        return BackoffPolicy(delay=self._rate_limit_delay, sleep=self._sleep)

    async def download_all(
        self,
        replays: list[ReplayDescriptor],
        directory: Path,
        policy: BackoffPolicy | None = None,
    ) -> list[Path]:
        """Download replays sequentially into a directory.

        The first failure aborts the remaining downloads; replays already
        written stay on disk.

        Args:
            replays: Replays missing from the directory
            directory: The sync directory
            policy: Backoff policy of the run, a fresh one if omitted

        Returns:
            Paths of the written replays, in download order
        """
        if policy is None:
            policy = self.new_policy()

        downloaded: list[Path] = []
        # One request in flight at a time
        for replay in replays:
            downloaded.append(await self.download(replay, directory, policy))
        return downloaded

    async def download(self, replay: ReplayDescriptor, directory: Path, policy: BackoffPolicy) -> Path:
        """Download a single replay, retrying for as long as the service answers 429.

        Raises:
            DownloadHttpError: On any other non-2xx status
            DownloadTransportError: If the content service cannot be reached
            DownloadWriteError: If the replay cannot be written
        """
        url = replay.url(self._content_base_url)
        path = replay.path_in(directory)

        while True:
            await policy.wait()
            try:
                response = await self._http_client.get(url)
            except httpx.RequestError as e:
                log.error("Replay download failed", replay_id=replay.id, url=url, error=str(e))
                raise DownloadTransportError(replay.id, cause=e, url=url) from e

            if response.status_code == TOO_MANY_REQUESTS:
                policy.rate_limited(replay.id)
                continue

            if not response.is_success:
                log.error("Replay download failed", replay_id=replay.id, url=url, status_code=response.status_code)
                raise DownloadHttpError(replay.id, response.status_code, url=url)
            break

        # Overwrites a file that appeared since reconciliation
        await self._filesystem.write_file(path, response.content)
        log.info("Downloaded replay", filename=path.name, size=len(response.content))
        return path
