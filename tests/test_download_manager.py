"""Tests for the download manager service and its backoff policy."""

import asyncio
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import patch

import httpx
import pytest

from replay_sync.errors import DownloadHttpError, DownloadTransportError, DownloadWriteError
from replay_sync.models import ReplayDescriptor
from replay_sync.services import (
    BackoffPolicy,
    DownloadManagerService,
    FileSystemService,
    HttpClientService,
)


CONTENT_BASE_URL = "https://content.test"


def replay(replay_id: str, is_multi: bool = False) -> ReplayDescriptor:
    return ReplayDescriptor(replay_id, is_multi, datetime(2023, 5, 1, 12, 30, tzinfo=timezone.utc))


def create_manager(handler: object, sleeps: list[float]) -> tuple[DownloadManagerService, HttpClientService]:
    async def fake_sleep(delay: float) -> None:
        sleeps.append(delay)

    http_client = HttpClientService(user_agent="replay-sync-tests", transport=httpx.MockTransport(handler))
    manager = DownloadManagerService(
        http_client=http_client,
        filesystem=FileSystemService(),
        content_base_url=CONTENT_BASE_URL,
        rate_limit_delay=5.0,
        sleep=fake_sleep,
    )
    return manager, http_client


def scripted(statuses: dict[str, list[int]], requests: list[str]) -> object:
    """Handler answering queued status codes per replay, then the replay content."""
    def handler(request: httpx.Request) -> httpx.Response:
        replay_id = request.url.path.rsplit("/", 1)[-1]
        requests.append(replay_id)
        queued = statuses.get(replay_id)
        if queued:
            return httpx.Response(queued.pop(0))
        return httpx.Response(200, content=f"replay {replay_id}".encode())

    return handler


def warning_events(mock_logger: object) -> list[str]:
    return [call.args[0] for call in mock_logger.warning.call_args_list]  # type: ignore[attr-defined]


@pytest.mark.asyncio
async def test_downloads_write_replay_content(tmp_path: Path) -> None:
    requests: list[str] = []
    sleeps: list[float] = []
    manager, http_client = create_manager(scripted({}, requests), sleeps)

    paths = await manager.download_all([replay("a"), replay("b", is_multi=True)], tmp_path)
    await http_client.close()

    assert paths == [tmp_path / "20230501T123000Z-a.ttr", tmp_path / "20230501T123000Z-b.ttrm"]
    assert paths[0].read_bytes() == b"replay a"
    assert paths[1].read_bytes() == b"replay b"
    assert requests == ["a", "b"]
    assert sleeps == []


@pytest.mark.asyncio
async def test_two_rate_limits_then_success_wait_twice(tmp_path: Path) -> None:
    requests: list[str] = []
    sleeps: list[float] = []
    manager, http_client = create_manager(scripted({"a": [429, 429]}, requests), sleeps)

    with patch("replay_sync.services.download_manager.log") as mock_logger:
        paths = await manager.download_all([replay("a")], tmp_path)
    await http_client.close()

    assert paths[0].read_bytes() == b"replay a"
    assert requests == ["a", "a", "a"]
    assert sleeps == [5.0, 5.0]
    assert warning_events(mock_logger) == [
        "Content service returned 429 - adding a delay",
        "Content service returned 429",
    ]


@pytest.mark.asyncio
async def test_backoff_stays_engaged_for_later_replays(tmp_path: Path) -> None:
    requests: list[str] = []
    sleeps: list[float] = []
    manager, http_client = create_manager(scripted({"a": [429]}, requests), sleeps)

    with patch("replay_sync.services.download_manager.log") as mock_logger:
        await manager.download_all([replay("a"), replay("b"), replay("c")], tmp_path)
    await http_client.close()

    # One wait for the retry of a, then one before each later replay
    assert requests == ["a", "a", "b", "c"]
    assert sleeps == [5.0, 5.0, 5.0]
    assert warning_events(mock_logger) == ["Content service returned 429 - adding a delay"]


@pytest.mark.asyncio
async def test_policy_is_fresh_for_each_run(tmp_path: Path) -> None:
    requests: list[str] = []
    sleeps: list[float] = []
    manager, http_client = create_manager(scripted({"a": [429]}, requests), sleeps)

    first = manager.new_policy()
    await manager.download_all([replay("a")], tmp_path, first)
    second = manager.new_policy()
    await manager.download_all([replay("b")], tmp_path, second)
    await http_client.close()

    assert first.engaged is True
    assert second.engaged is False
    assert sleeps == [5.0]


@pytest.mark.asyncio
async def test_not_found_aborts_remaining_downloads(tmp_path: Path) -> None:
    requests: list[str] = []
    sleeps: list[float] = []
    manager, http_client = create_manager(scripted({"b": [404]}, requests), sleeps)

    with pytest.raises(DownloadHttpError) as exc_info:
        await manager.download_all([replay("a"), replay("b"), replay("c")], tmp_path)
    await http_client.close()

    assert exc_info.value.replay_id == "b"
    assert exc_info.value.status_code == 404
    assert requests == ["a", "b"]
    assert (tmp_path / replay("a").filename).exists()
    assert not (tmp_path / replay("b").filename).exists()
    assert not (tmp_path / replay("c").filename).exists()


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [400, 403, 500, 502])
async def test_other_errors_are_not_retried(tmp_path: Path, status_code: int) -> None:
    requests: list[str] = []
    sleeps: list[float] = []
    manager, http_client = create_manager(scripted({"a": [status_code]}, requests), sleeps)

    with pytest.raises(DownloadHttpError):
        await manager.download_all([replay("a")], tmp_path)
    await http_client.close()

    assert requests == ["a"]
    assert sleeps == []


@pytest.mark.asyncio
async def test_network_failure_is_a_transport_error(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    manager, http_client = create_manager(handler, [])

    with pytest.raises(DownloadTransportError) as exc_info:
        await manager.download_all([replay("a")], tmp_path)
    await http_client.close()

    assert exc_info.value.replay_id == "a"
    assert isinstance(exc_info.value.cause, httpx.ReadTimeout)
    assert exc_info.value.url == "https://content.test/api/replay/a"


@pytest.mark.asyncio
async def test_existing_file_is_replaced(tmp_path: Path) -> None:
    target = tmp_path / replay("a").filename
    target.write_bytes(b"stale content that is longer than the replay")
    manager, http_client = create_manager(scripted({}, []), [])

    await manager.download_all([replay("a")], tmp_path)
    await http_client.close()

    assert target.read_bytes() == b"replay a"


@pytest.mark.asyncio
async def test_unwritable_destination_is_a_write_error(tmp_path: Path) -> None:
    manager, http_client = create_manager(scripted({}, []), [])

    with pytest.raises(DownloadWriteError):
        await manager.download_all([replay("a")], tmp_path / "missing")
    await http_client.close()


@pytest.mark.asyncio
async def test_downloads_never_overlap(tmp_path: Path) -> None:
    in_flight = 0
    max_in_flight = 0

    async def handler(request: httpx.Request) -> httpx.Response:
        nonlocal in_flight, max_in_flight
        in_flight += 1
        max_in_flight = max(max_in_flight, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1
        return httpx.Response(200, content=b"replay")

    manager, http_client = create_manager(handler, [])
    await manager.download_all([replay(str(n)) for n in range(5)], tmp_path)
    await http_client.close()

    assert max_in_flight == 1


@pytest.mark.asyncio
async def test_backoff_policy_delay_does_not_grow() -> None:
    sleeps: list[float] = []

    async def fake_sleep(delay: float) -> None:
        sleeps.append(delay)

    policy = BackoffPolicy(delay=5.0, sleep=fake_sleep)
    await policy.wait()
    for _ in range(4):
        policy.rate_limited("a")
        await policy.wait()

    assert policy.engaged is True
    assert sleeps == [5.0, 5.0, 5.0, 5.0]
