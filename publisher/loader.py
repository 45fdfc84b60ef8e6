"""Image source loading for exports: inline data URLs and remote pages."""

import logging
from typing import Optional

import httpx

from tools.image_utils import decode_data_url, is_data_url

logger = logging.getLogger(__name__)


class ImageLoadError(Exception):
    """One page source could not be loaded."""


class ImageLoader:
    """Loads page images as (mime type, bytes).

    Remote URLs are fetched with httpx; one client is reused for an export.
    """

    def __init__(self, timeout: float = 20.0, client: Optional[httpx.Client] = None):
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    def __enter__(self):
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout, follow_redirects=True)
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self):
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None

    def load(self, source: str) -> tuple[str, bytes]:
        if is_data_url(source):
            try:
                return decode_data_url(source)
            except ValueError as e:
                raise ImageLoadError(f"inline image: {e}") from e
        if not source.startswith(("http://", "https://")):
            raise ImageLoadError(f"unsupported image source: {source[:60]}")
        return self._fetch(source)

    def _fetch(self, url: str) -> tuple[str, bytes]:
        if self._client is None:
            self.__enter__()
        try:
            response = self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise ImageLoadError(f"{url}: {e}") from e
        mime_type = response.headers.get("content-type", "image/png").split(";")[0].strip()
        logger.debug("Fetched %s (%s, %d bytes)", url, mime_type, len(response.content))
        return mime_type, response.content
