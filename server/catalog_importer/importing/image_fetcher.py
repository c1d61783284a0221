"""Download product images and link them to products."""
from __future__ import annotations

import logging
import mimetypes
from dataclasses import dataclass
from pathlib import PurePosixPath
from urllib.parse import unquote, urlparse
from uuid import uuid4

import httpx

from catalog_importer.models.catalog import Image
from catalog_importer.models.product import Product
from catalog_importer.services.image_storage import ImageStorage

from .errors import FetchError

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif"})
DEFAULT_EXTENSION = ".jpg"
DEFAULT_TIMEOUT_SECONDS = 30.0
ALLOWED_SCHEMES = frozenset({"http", "https"})

_TEXTUAL_TYPES = frozenset({"application/json", "application/xml", "application/xhtml+xml", "application/javascript"})


@dataclass(frozen=True)
class FetchedImage:
    """Bytes downloaded for one image URL."""

    url: str
    filename: str
    content_type: str | None
    data: bytes


def _is_binary(content_type: str) -> bool:
    if not content_type:
        return True
    return not (content_type.startswith("text/") or content_type in _TEXTUAL_TYPES)


def _filename_for(url: str, content_type: str) -> str:
    name = PurePosixPath(unquote(urlparse(url).path)).name
    if PurePosixPath(name).suffix.lower() in IMAGE_EXTENSIONS:
        return name

    extension = mimetypes.guess_extension(content_type) if content_type else None
    if extension not in IMAGE_EXTENSIONS:
        extension = DEFAULT_EXTENSION
    stem = PurePosixPath(name).stem or uuid4().hex
    return f"{stem}{extension}"


class ImageFetcher:
    """Fetches image URLs over HTTP with a bounded timeout."""

    def __init__(self, client: httpx.Client | None = None, *, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        """Initialize the fetcher.

        Args:
            client: Optional preconfigured client (tests pass one with a mock transport)
            timeout: Per-request timeout in seconds, used when no client is given
        """
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout, follow_redirects=True)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> ImageFetcher:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def fetch(self, url: str | None) -> FetchedImage | None:
        """Download ``url``.

        Args:
            url: Image URL; blank means the row has no image

        Returns:
            The downloaded image, or None when ``url`` is blank

        Raises:
            FetchError: On non-http(s) URLs, network errors, non-2xx
                responses, empty bodies or textual content
        """
        if url is None or not url.strip():
            return None
        url = url.strip()
        if urlparse(url).scheme.lower() not in ALLOWED_SCHEMES:
            raise FetchError(f"{url!r} is not an http(s) URL")

        try:
            response = self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise FetchError(f"GET {url} returned HTTP {exc.response.status_code}") from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise FetchError(f"GET {url} failed: {exc}") from exc

        content_type = response.headers.get("content-type", "").split(";")[0].strip().lower()
        if not _is_binary(content_type):
            raise FetchError(f"GET {url} returned {content_type}, not an image")
        if not response.content:
            raise FetchError(f"GET {url} returned an empty body")

        logger.debug(f"Fetched {len(response.content)} bytes from {url}")
        return FetchedImage(
            url=url,
            filename=_filename_for(url, content_type),
            content_type=content_type or None,
            data=response.content,
        )


def attach_image(storage: ImageStorage, product: Product, fetched: FetchedImage) -> Image:
    """Store the downloaded bytes and append a new Image to the product."""
    key = storage.save(fetched.data, fetched.filename)
    image = Image(
        filename=fetched.filename,
        content_type=fetched.content_type,
        storage_key=key,
        size=len(fetched.data),
        source_url=fetched.url,
    )
    product.images.append(image)
    return image
