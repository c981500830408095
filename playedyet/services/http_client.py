"""Async HTTP client used for metadata searches and cover downloads."""

from typing import Any

import httpx
import structlog

from .errors import NetworkError

log = structlog.stdlib.get_logger()

USER_AGENT = "PlayedYet/0.1 (personal game library tracker)"


class HttpClientService:
    """Thin wrapper over ``httpx.AsyncClient`` with status checks and logging.

    Requests are not retried; a failed request surfaces to the caller.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the HTTP client service.

        Args:
            timeout: Request timeout in seconds
            transport: Optional transport override (used by tests)
        """
        self.timeout = timeout
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            headers={"User-Agent": USER_AGENT},
            follow_redirects=True,
            transport=transport,
        )
        log.info("HTTP client service initialized", timeout=timeout)

    async def get(
        self,
        url: str,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Make a GET request and fail on a non-success status.

        Raises:
            httpx.HTTPStatusError: On a 4xx/5xx response
            httpx.RequestError: On connection or timeout failure
        """
        log.debug("Making HTTP GET request", url=url)
        try:
            response = await self._client.get(url, params=params)
            response.raise_for_status()
        except httpx.HTTPError as e:
            log.warning(
                "HTTP GET request failed",
                url=url,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

        log.debug(
            "HTTP GET request successful",
            url=url,
            status_code=response.status_code,
            content_length=len(response.content),
        )
        return response

    async def get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        response = await self.get(url, params=params)
        return response.json()

    async def get_bytes(self, url: str) -> bytes:
        """Download a response body, requiring a 2xx status.

        Raises:
            NetworkError: If the server answers with a non-success status
            httpx.RequestError: On connection or timeout failure
        """
        response = await self._client.get(url)
        if not response.is_success:
            log.warning("Download rejected", url=url, status_code=response.status_code)
            raise NetworkError(
                f"Failed to download image: {response.status_code}",
                url=url,
                status_code=response.status_code,
            )

        log.debug("Download completed", url=url, size=len(response.content))
        return response.content

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        await self._client.aclose()
        log.info("HTTP client closed")

    async def __aenter__(self) -> "HttpClientService":
        return self

    async def __aexit__(self, exc_type: type[Exception] | None, exc_val: Exception | None, exc_tb: Any) -> None:
        await self.close()
