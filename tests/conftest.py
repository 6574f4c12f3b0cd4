"""Shared fixtures simulating the metadata and content services."""

from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest

from replay_sync.services import (
    DownloadManagerService,
    FileSystemService,
    HttpClientService,
    PrunerService,
    ReconcilerService,
    StreamFetcherService,
    SyncService,
)


METADATA_BASE_URL = "https://metadata.test"
CONTENT_BASE_URL = "https://content.test"


class FakeBackend:
    """In-memory metadata and content service behind an httpx mock transport."""

    def __init__(self) -> None:
        self.streams: dict[str, Any] = {}
        self.replays: dict[str, bytes] = {}
        # Status codes returned for a replay before it is served
        self.content_statuses: dict[str, list[int]] = {}
        self.requests: list[str] = []

    def add_replay(
        self,
        stream: str,
        replay_id: str,
        recorded_at: str = "2023-05-01T12:30:00Z",
        is_multi: bool | None = None,
        content: bytes | None = None,
    ) -> None:
        record: dict[str, Any] = {"replayId": replay_id, "recordedAt": recorded_at}
        if is_multi is not None:
            record["isMulti"] = is_multi
        body = self.streams.setdefault(stream, {"data": {"records": []}})
        body["data"]["records"].append(record)
        self.replays[replay_id] = content if content is not None else f"replay {replay_id}".encode()

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests.append(path)

        if path.startswith("/api/streams/"):
            name = path.removeprefix("/api/streams/")
            if name not in self.streams:
                return httpx.Response(404, json={"success": False})
            return httpx.Response(200, json=self.streams[name])

        if path.startswith("/api/replay/"):
            replay_id = path.removeprefix("/api/replay/")
            queued = self.content_statuses.get(replay_id)
            if queued:
                return httpx.Response(queued.pop(0))
            if replay_id not in self.replays:
                return httpx.Response(404)
            return httpx.Response(200, content=self.replays[replay_id])

        return httpx.Response(404)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def download_requests(self) -> list[str]:
        return [path for path in self.requests if path.startswith("/api/replay/")]


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def sleeps() -> list[float]:
    """Delays requested by the download manager, recorded instead of slept."""
    return []


@pytest.fixture
def make_sync_service(
    backend: FakeBackend,
    sleeps: list[float],
) -> Callable[[], tuple[SyncService, HttpClientService]]:
    def factory() -> tuple[SyncService, HttpClientService]:
        async def fake_sleep(delay: float) -> None:
            sleeps.append(delay)

        http_client = HttpClientService(user_agent="replay-sync-tests", transport=backend.transport)
        filesystem = FileSystemService()
        service = SyncService(
            stream_fetcher=StreamFetcherService(http_client, METADATA_BASE_URL),
            reconciler=ReconcilerService(filesystem),
            download_manager=DownloadManagerService(
                http_client=http_client,
                filesystem=filesystem,
                content_base_url=CONTENT_BASE_URL,
                rate_limit_delay=5.0,
                sleep=fake_sleep,
            ),
            pruner=PrunerService(filesystem),
        )
        return service, http_client

    return factory


@pytest.fixture
def write_files() -> Callable[..., None]:
    """Create files with placeholder content in a directory."""
    def write(directory: Path, *names: str) -> None:
        directory.mkdir(parents=True, exist_ok=True)
        for name in names:
            (directory / name).write_bytes(b"existing")

    return write
