"""Best-effort cover image acquisition with a local file cache."""

import re

import structlog

from .blob_store import BlobStore
from .metadata import MetadataFetcher

log = structlog.stdlib.get_logger()

COVER_DIRECTORY = "Resources"

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9]")


def cover_cache_key(title: str) -> str:
    """Derive the cache key for a title.

    Lowercases and replaces every character outside ``[a-z0-9]`` with ``_``.
    Distinct titles can share a key ("Halo!" and "Halo?" both give ``halo_``).
    """
    return _NON_SLUG_CHARS.sub("_", title.lower())


def cover_cache_path(title: str) -> str:
    """Relative blob store path of the cached cover for a title."""
    return f"{COVER_DIRECTORY}/{cover_cache_key(title)}.jpg"


class ImageAcquisitionService:
    """Resolves a title to a local cover image path.

    Failures of any kind degrade to ``None``; callers store that as
    "no image" and carry on.
    """

    def __init__(self, blob_store: BlobStore, fetcher: MetadataFetcher) -> None:
        self.blob_store = blob_store
        self.fetcher = fetcher

    async def acquire(self, title: str, force_refresh: bool = False) -> str | None:
        """Return the absolute path of a cover for ``title``, or None.

        Args:
            title: Game title to look up
            force_refresh: Ignore a cached file and fetch again
        """
        relative_path = cover_cache_path(title)

        try:
            await self.blob_store.ensure_dir(COVER_DIRECTORY)

            if not force_refresh and await self.blob_store.exists(relative_path):
                log.debug("Cover cache hit", title=title, path=relative_path)
                return str(self.blob_store.resolve_path(relative_path))

            image_url = await self.fetcher.search(title)
            if not image_url:
                return None

            image_bytes = await self.fetcher.download(image_url)
            full_path = await self.blob_store.write(relative_path, image_bytes, encoding="binary")

        except Exception as e:
            log.error(
                "Error fetching/saving game image",
                title=title,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None

        log.info("Cover image saved", title=title, path=str(full_path))
        return str(full_path)
