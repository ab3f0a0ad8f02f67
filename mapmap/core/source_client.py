"""Loading of geometry and data sources."""

import asyncio
import csv
import io
import json
import logging
import math
import re
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urlparse

import aiohttp

from mapmap.core.config import FETCH_TIMEOUT, FORMAT_MAP, MAX_RETRIES, RETRY_DELAY
from mapmap.core.errors import SourceError

logger = logging.getLogger(__name__)


def detect_format(source: str) -> str:
    """
    Guess the payload format of a source from its extension.

    Args:
        source: URL or file path

    Returns:
        Format name ("json", "csv" or "tsv"), "json" if unknown
    """
    path = urlparse(source).path if is_url(source) else source
    return FORMAT_MAP.get(Path(path).suffix.lower(), "json")


def is_url(source: str) -> bool:
    """Check whether a source string is an HTTP(S) URL."""
    return urlparse(source).scheme in ("http", "https")


_NUMBER = re.compile(r"-?(?:(?:0|[1-9][0-9]*)(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][-+]?[0-9]+)?")


def coerce_value(value: str) -> Any:
    """
    Convert a delimited-text cell to int or float where it reads as one.

    Cells with leading zeros, padding, digit separators or non-finite
    spellings ("01001", " 12", "1_000", "nan") stay strings so join keys
    keep their exact text.
    """
    if not _NUMBER.fullmatch(value):
        return value
    if value.lstrip("-").isdigit():
        return int(value)
    number = float(value)
    return number if math.isfinite(number) else value


def decode_payload(text: str, fmt: str, source: str = "<memory>") -> Any:
    """
    Decode loaded text.

    Args:
        text: Raw text content
        fmt: "json", "csv" or "tsv"
        source: Source name for error messages

    Returns:
        Parsed JSON value, or a list of row dictionaries for delimited text

    Raises:
        SourceError: If the content cannot be parsed
    """
    if fmt == "json":
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise SourceError(source, f"invalid JSON: {e}") from e
    if fmt in ("csv", "tsv"):
        delimiter = "," if fmt == "csv" else "\t"
        reader = csv.DictReader(io.StringIO(text), delimiter=delimiter)
        try:
            return [{k: coerce_value(v) for k, v in row.items() if k is not None} for row in reader]
        except csv.Error as e:
            raise SourceError(source, f"invalid {fmt.upper()}: {e}") from e
    raise SourceError(source, f"unsupported format: {fmt}")


class SourceClient:
    """Client for loading sources from URLs, local files or memory."""

    def __init__(self, base_dir: Path | None = None):
        """
        Initialize source client.

        Args:
            base_dir: Directory that relative file paths resolve against
        """
        self.base_dir = base_dir
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        """Async context manager entry."""
        self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def close(self):
        """Close the HTTP session if one was opened."""
        if self.session:
            await self.session.close()
            self.session = None

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=FETCH_TIMEOUT))
        return self.session

    async def load(self, source: Any, fmt: str | None = None) -> Any:
        """
        Load and decode a source.

        Args:
            source: URL, file path, already-decoded payload (dict or list),
                    or an awaitable resolving to a payload
            fmt: Payload format, detected from the extension if None

        Returns:
            Decoded payload

        Raises:
            SourceError: If the source cannot be fetched or decoded
        """
        if isinstance(source, (dict, list)):
            return source
        if hasattr(source, "__await__"):
            return await source
        if isinstance(source, Path):
            source = str(source)
        if not isinstance(source, str):
            raise SourceError(repr(source), f"unsupported source type: {type(source).__name__}")

        fmt = fmt or detect_format(source)
        if is_url(source):
            text = await self.fetch_text(source)
        else:
            text = await self.read_text(source)
        payload = decode_payload(text, fmt, source)
        logger.debug(f"Loaded {fmt} source: {source}")
        return payload

    async def read_text(self, path: str) -> str:
        """
        Read a local file without blocking the event loop.

        Args:
            path: File path, relative paths resolve against base_dir

        Returns:
            File content

        Raises:
            SourceError: If the file cannot be read
        """
        file_path = Path(path)
        if self.base_dir and not file_path.is_absolute():
            file_path = self.base_dir / file_path
        try:
            return await asyncio.to_thread(file_path.read_text, encoding="utf-8")
        except OSError as e:
            raise SourceError(str(file_path), f"cannot read file: {e}") from e

    async def fetch_text(self, url: str) -> str:
        """
        Fetch a URL with retries.

        Args:
            url: HTTP(S) URL

        Returns:
            Response body

        Raises:
            SourceError: On 404, or once all retries are exhausted
        """
        session = self._ensure_session()

        for attempt in range(MAX_RETRIES):
            try:
                async with session.get(url) as response:
                    if response.status == 200:
                        text = await response.text()
                        logger.debug(f"Fetched: {url}")
                        return text
                    elif response.status == 404:
                        raise SourceError(url, "not found (404)")
                    else:
                        logger.warning(f"HTTP {response.status} for {url} (attempt {attempt + 1}/{MAX_RETRIES})")
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                logger.warning(f"Error fetching {url}: {e} (attempt {attempt + 1}/{MAX_RETRIES})")

            if attempt < MAX_RETRIES - 1:
                await asyncio.sleep(RETRY_DELAY * (attempt + 1))

        logger.error(f"Failed to fetch source after {MAX_RETRIES} attempts: {url}")
        raise SourceError(url, f"failed after {MAX_RETRIES} attempts")
