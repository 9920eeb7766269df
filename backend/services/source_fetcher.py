"""Fetches source document bytes for the renderer."""
import asyncio
import logging
import time
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse
from urllib.request import url2pathname

import httpx

from config import FETCH_TIMEOUT, MAX_SOURCE_BYTES
from services.errors import SourceUnavailable

logger = logging.getLogger(__name__)


def is_valid_url(value: str) -> bool:
    """Return True for an absolute http(s) URL with a host."""
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def url_protocol(value: str) -> str:
    try:
        scheme = urlparse(value).scheme
    except ValueError:
        return "invalid"
    return f"{scheme}:" if scheme else "invalid"


def url_domain(value: str) -> str:
    try:
        hostname = urlparse(value).hostname
    except ValueError:
        return "invalid"
    return hostname or "invalid"


class SourceFetcher:
    """Loads a source document from an http(s) URL (or a local file, when allowed)."""

    def __init__(
        self,
        timeout: float = FETCH_TIMEOUT,
        max_bytes: int = MAX_SOURCE_BYTES,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        allow_local: bool = False
    ):
        """
        Initialize the fetcher.

        Args:
            timeout: Request timeout in seconds
            max_bytes: Largest accepted document size
            transport: Optional httpx transport (used to stub the network in tests)
            allow_local: Accept file:// URLs and local paths (batch script only)
        """
        self.timeout = timeout
        self.max_bytes = max_bytes
        self.transport = transport
        self.allow_local = allow_local

    async def fetch(self, reference: str) -> bytes:
        """
        Fetch the raw bytes behind a document reference.

        Args:
            reference: http(s) URL; also a file:// URL or local path when
                `allow_local` is set

        Returns:
            Document bytes

        Raises:
            SourceUnavailable: If the reference is malformed, local while local
                reads are off, or cannot be read
        """
        if not reference or not reference.strip():
            raise SourceUnavailable("Document reference is empty", {"reference": reference})

        reference = reference.strip()
        if self._is_local(reference):
            return await self._read_local(self._local_path(reference))
        if url_protocol(reference) == "file:":
            logger.warning(f"Rejected local document reference: {reference}")
            raise SourceUnavailable(
                "Local document references are not accepted",
                {"reference": reference, "protocol": "file:"}
            )

        if not is_valid_url(reference):
            logger.error(f"Invalid document reference: {reference}")
            raise SourceUnavailable(
                "The document URL appears to be invalid",
                {"reference": reference, "protocol": url_protocol(reference)}
            )

        logger.info(
            f"Fetching document: protocol={url_protocol(reference)}, domain={url_domain(reference)}"
        )
        if ".pdf" not in reference.lower():
            logger.warning(f"Document URL does not appear to be a PDF: {reference}")

        return await self._download(reference)

    async def _download(self, url: str) -> bytes:
        start_time = time.time()
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                transport=self.transport
            ) as client:
                async with client.stream("GET", url) as response:
                    if response.status_code != 200:
                        logger.error(f"Document fetch failed with status {response.status_code}: {url}")
                        raise SourceUnavailable(
                            f"Document request failed with status {response.status_code}",
                            {"url": url, "status_code": response.status_code}
                        )

                    chunks = []
                    received = 0
                    async for chunk in response.aiter_bytes():
                        received += len(chunk)
                        if received > self.max_bytes:
                            raise SourceUnavailable(
                                f"Document exceeds the {self.max_bytes} byte limit",
                                {"url": url, "max_bytes": self.max_bytes}
                            )
                        chunks.append(chunk)

        except httpx.TimeoutException as e:
            logger.error(f"Document fetch timed out after {self.timeout}s: {url}")
            raise SourceUnavailable(
                f"Request timeout after {self.timeout}s",
                {"url": url, "original_error": str(e)}
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Network error fetching {url}: {e}")
            raise SourceUnavailable(
                f"Network error: {str(e)}",
                {"url": url, "original_error": str(e)}
            ) from e

        data = b"".join(chunks)
        if not data:
            raise SourceUnavailable("Document is empty", {"url": url})

        elapsed = time.time() - start_time
        logger.info(f"Fetched {len(data)} bytes in {elapsed:.2f}s")
        return data

    def _is_local(self, reference: str) -> bool:
        if not self.allow_local:
            return False
        scheme = url_protocol(reference)
        return scheme == "file:" or (scheme == "invalid" and Path(reference).exists())

    def _local_path(self, reference: str) -> Path:
        parsed = urlparse(reference)
        if parsed.scheme == "file":
            return Path(url2pathname(parsed.path))
        return Path(reference)

    async def _read_local(self, path: Path) -> bytes:
        if not path.is_file():
            raise SourceUnavailable(f"File not found: {path}", {"path": str(path)})

        size = path.stat().st_size
        if size > self.max_bytes:
            raise SourceUnavailable(
                f"Document exceeds the {self.max_bytes} byte limit",
                {"path": str(path), "max_bytes": self.max_bytes}
            )
        if size == 0:
            raise SourceUnavailable("Document is empty", {"path": str(path)})

        try:
            data = await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise SourceUnavailable(
                f"Could not read {path}: {e}",
                {"path": str(path), "original_error": str(e)}
            ) from e

        logger.info(f"Read {len(data)} bytes from {path}")
        return data
