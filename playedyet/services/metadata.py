"""Cover art lookup against the RAWG games database."""

from collections.abc import Callable
from typing import Any, Protocol

import structlog

from .http_client import HttpClientService

log = structlog.stdlib.get_logger()

RAWG_SEARCH_URL = "https://api.rawg.io/api/games"


class MetadataFetcher(Protocol):
    """Port for the external cover art service."""

    async def search(self, title: str) -> str | None:
        """Return a remote cover image URL for a title, or None."""
        ...

    async def download(self, url: str) -> bytes:
        """Return the bytes of a remote image."""
        ...


class RawgMetadataFetcher:
    """Finds cover images through the RAWG search API.

    The API key is looked up on every search so a key saved in Settings
    takes effect without a restart.
    """

    def __init__(
        self,
        http_client: HttpClientService,
        api_key_provider: Callable[[], str],
        search_url: str = RAWG_SEARCH_URL,
    ) -> None:
        self.http_client = http_client
        self._api_key_provider = api_key_provider
        self.search_url = search_url

    def has_api_key(self) -> bool:
        return bool(self._api_key_provider().strip())

    async def search(self, title: str) -> str | None:
        """Search RAWG for a title and return the first result's background image.

        Returns:
            The image URL, or None when no key is configured or nothing matched

        Raises:
            httpx.HTTPError: If the request fails
        """
        api_key = self._api_key_provider().strip()
        if not api_key:
            log.error("No RAWG API key configured, skipping cover search", title=title)
            return None

        data: Any = await self.http_client.get_json(
            self.search_url,
            params={"key": api_key, "search": title, "page_size": 1},
        )

        results = data.get("results") if isinstance(data, dict) else None
        if not results:
            log.info("No RAWG results for title", title=title)
            return None

        image_url = results[0].get("background_image")
        log.debug("RAWG cover found", title=title, image_url=image_url)
        return image_url or None

    async def download(self, url: str) -> bytes:
        return await self.http_client.get_bytes(url)
