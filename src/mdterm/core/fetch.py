"""Image transport and SVG rasterisation collaborators"""

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Optional, Protocol

import httpx


logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
RSVG_CONVERT = "rsvg-convert"


class FetchError(Exception):
    """Raised when image bytes cannot be obtained; the message is the reason."""


class ConversionError(Exception):
    """Raised when an SVG cannot be rasterised; the message is the reason."""


class Fetcher(Protocol):
    def fetch(self, location: str) -> bytes: ...


class SvgConverter(Protocol):
    def convert(self, svg: bytes) -> bytes: ...


class ResourceFetcher:
    """Reads local files and GETs http(s) URLs.

    The httpx client is created lazily so documents without remote images
    never open one.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, client: Optional[httpx.Client] = None) -> None:
        self.timeout = timeout
        self._client = client

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout, follow_redirects=True)
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> "ResourceFetcher":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def fetch(self, location: str) -> bytes:
        if location.startswith(("http://", "https://")):
            return self._fetch_url(location)
        return self._fetch_file(Path(location))

    def _fetch_url(self, url: str) -> bytes:
        logger.debug(f"Fetching {url}")
        try:
            response = self.client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise FetchError(f"HTTP {e.response.status_code} for {url}") from e
        except httpx.HTTPError as e:
            raise FetchError(f"failed to fetch {url}: {e}") from e
        return response.content

    def _fetch_file(self, path: Path) -> bytes:
        logger.debug(f"Reading {path}")
        try:
            return path.read_bytes()
        except FileNotFoundError as e:
            raise FetchError(f"file not found: {path}") from e
        except OSError as e:
            raise FetchError(f"cannot read {path}: {e.strerror}") from e


class RsvgConverter:
    """Rasterises SVG to PNG by piping it through rsvg-convert."""

    def __init__(self, executable: str, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.executable = executable
        self.timeout = timeout

    def convert(self, svg: bytes) -> bytes:
        try:
            result = subprocess.run(
                [self.executable, "--format", "png"],
                input=svg,
                capture_output=True,
                check=True,
                timeout=self.timeout,
            )
        except subprocess.CalledProcessError as e:
            detail = e.stderr.decode("utf-8", errors="replace").strip()
            raise ConversionError(f"{self.executable} failed: {detail or e.returncode}") from e
        except subprocess.TimeoutExpired as e:
            raise ConversionError(f"{self.executable} timed out") from e
        except OSError as e:
            raise ConversionError(f"cannot run {self.executable}: {e.strerror}") from e
        return result.stdout


def find_svg_converter(timeout: float = DEFAULT_TIMEOUT) -> Optional[RsvgConverter]:
    """Return a converter if rsvg-convert is on PATH, else None."""
    executable = shutil.which(RSVG_CONVERT)
    if executable is None:
        logger.debug(f"{RSVG_CONVERT} not found; SVG images will not be shown")
        return None
    return RsvgConverter(executable, timeout)
