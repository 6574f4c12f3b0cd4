"""HTTP client service shared by the metadata and content requests."""

from typing import Any

import httpx
import structlog

from ..models import AppConfig

log = structlog.stdlib.get_logger()


class HttpClientService:
    """Thin wrapper around one ``httpx.AsyncClient`` for the whole run.

    Status codes are left to the caller: the metadata and content services
    treat errors differently, and 429 from the content service is not an
    error at all.
    """

    def __init__(
        self,
        user_agent: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the HTTP client service.

        Args:
            user_agent: User-Agent header sent with every request
            timeout: Request timeout in seconds
            transport: Optional transport, used by tests to simulate services
        """
        self.timeout = timeout
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            headers={"User-Agent": user_agent},
            follow_redirects=True,
            transport=transport,
        )

        log.debug(
            "HTTP client service initialized",
            timeout=timeout,
            user_agent=user_agent,
        )

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "HttpClientService":
        return cls(user_agent=config.user_agent, timeout=config.request_timeout, transport=transport)

    async def get(self, url: str) -> httpx.Response:
        """Make a single GET request.

        Returns:
            The response, whatever its status

        Raises:
            httpx.RequestError: If the request could not be completed
        """
        log.debug("Making HTTP GET request", url=url)
        response = await self._client.get(url)
        log.debug(
            "HTTP GET request finished",
            url=url,
            status_code=response.status_code,
            content_length=len(response.content),
        )
        return response

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        await self._client.aclose()
        log.debug("HTTP client closed")

    async def __aenter__(self) -> "HttpClientService":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: type[Exception] | None, exc_val: Exception | None, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()
