"""Stream fetcher service: replay descriptors from the metadata service."""

import asyncio
from typing import Any

import httpx
import structlog

from ..errors import InvalidRecordError, StreamDataMissingError, StreamFetchError
from ..models import ReplayDescriptor
from .http_client import HttpClientService

log = structlog.stdlib.get_logger()


def deduplicate(replays: list[ReplayDescriptor]) -> list[ReplayDescriptor]:
    """Drop repeated descriptors, keeping the first occurrence of each."""
    return list(dict.fromkeys(replays))


class StreamFetcherService:
    """Service for fetching replay records from named streams."""

    def __init__(self, http_client: HttpClientService, metadata_base_url: str) -> None:
        """Initialize the stream fetcher service.

        Args:
            http_client: HTTP client service for making requests
            metadata_base_url: Base URL of the metadata service
        """
        self.http_client = http_client
        self.metadata_base_url = metadata_base_url

    def stream_url(self, stream: str) -> str:
        return f"{self.metadata_base_url}/api/streams/{stream}"

    async def fetch_records(self, stream: str) -> list[dict[str, Any]]:
        """Fetch the raw records of a single stream.

        Args:
            stream: Stream name, e.g. ``40l_global``

        Returns:
            The raw records, possibly empty

        Raises:
            StreamFetchError: On network failure, non-2xx status or a malformed body
            StreamDataMissingError: If the body has no ``data`` payload
        """
        url = self.stream_url(stream)
        try:
            response = await self.http_client.get(url)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as e:
            log.error("Stream request failed", stream=stream, status_code=e.response.status_code)
            raise StreamFetchError(stream, cause=e, status_code=e.response.status_code) from e
        except httpx.RequestError as e:
            log.error("Stream request failed", stream=stream, error=str(e), error_type=type(e).__name__)
            raise StreamFetchError(stream, cause=e) from e
        except ValueError as e:
            log.error("Stream response is not valid JSON", stream=stream, error=str(e))
            raise StreamFetchError(stream, cause=e) from e

        if not isinstance(body, dict):
            raise StreamFetchError(stream, cause=ValueError(f"Expected JSON object, got {type(body).__name__}"))

        # An absent payload is an error, an empty record list is not
        data = body.get("data")
        if data is None:
            log.error("Stream response has no data", stream=stream)
            raise StreamDataMissingError(stream)

        records = data.get("records") if isinstance(data, dict) else None
        if not isinstance(records, list):
            raise StreamFetchError(stream, cause=ValueError("Stream data has no records list"))

        log.info("Fetched records", stream=stream, count=len(records))
        return records

    async def fetch_stream(self, stream: str) -> list[ReplayDescriptor]:
        """Fetch a stream and convert its records to replay descriptors."""
        records = await self.fetch_records(stream)
        replays = []
        for record in records:
            if not isinstance(record, dict):
                raise InvalidRecordError("Stream record is not an object", field="record", value=record)
            replays.append(ReplayDescriptor.from_record(record))
        return replays

    async def fetch_replays(self, streams: list[str]) -> list[ReplayDescriptor]:
        """Fetch all streams concurrently and merge their replays.

        Every stream must succeed; the first failure aborts the fetch.

        Args:
            streams: Stream names to fetch

        Returns:
            Unique replay descriptors in first-seen order
        """
        results = await asyncio.gather(*(self.fetch_stream(stream) for stream in streams))
        replays = [replay for stream_replays in results for replay in stream_replays]
        unique = deduplicate(replays)

        log.debug(
            "Merged stream replays",
            streams=len(streams),
            total=len(replays),
            unique=len(unique),
        )
        return unique
