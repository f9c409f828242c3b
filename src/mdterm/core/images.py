"""Image resolution: fetch, convert, and encode images for inline display

Every failure becomes an Unsupported result carrying the reason; nothing
here aborts a render. Results are not cached, each image resolves on its own.
"""

import base64
import logging
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Optional, Union
from urllib.parse import unquote, urlparse

from mdterm.core.emit import BEL, OSC
from mdterm.core.fetch import ConversionError, FetchError, Fetcher, SvgConverter
from mdterm.core.terminal import CapabilityProfile


logger = logging.getLogger(__name__)

NO_IMAGE_SUPPORT = "terminal lacks image support"
REMOTE_DISABLED = "remote images disabled"
NO_SVG_CONVERTER = "no SVG converter available"
UNRECOGNIZED_FORMAT = "unrecognized image format"

SVG_MIME = "image/svg+xml"
_SIGNATURES = (
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
)


@dataclass(frozen=True)
class Embedded:
    fragment: str                   # complete inline image escape sequence
    mime: str


@dataclass(frozen=True)
class Unsupported:
    reason: str


Resolution = Union[Embedded, Unsupported]


def sniff_mime(data: bytes) -> Optional[str]:
    """Identify the image format from its leading bytes, None if not an image."""
    for signature, mime in _SIGNATURES:
        if data.startswith(signature):
            return mime
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    head = data[:1024].lstrip(b"\xef\xbb\xbf \t\r\n").lower()
    if head.startswith(b"<svg") or (head.startswith((b"<?xml", b"<!doctype svg")) and b"<svg" in head):
        return SVG_MIME
    return None


def encode_inline_image(data: bytes, name: str = "") -> str:
    """Wrap image bytes in the iTerm2 inline image escape sequence."""
    args = []
    if name:
        args.append(f"name={base64.b64encode(name.encode('utf-8')).decode('ascii')}")
    args.append(f"size={len(data)}")
    args.append("inline=1")
    payload = base64.b64encode(data).decode("ascii")
    return f"{OSC}1337;File={';'.join(args)}:{payload}{BEL}"


class ImageResolver:
    """Resolves image URIs for one capability profile.

    converter may be None: SVG images then fall back to text on terminals
    that cannot display SVG directly.
    """

    def __init__(
        self,
        profile: CapabilityProfile,
        fetcher: Fetcher,
        converter: Optional[SvgConverter] = None,
        base_dir: Optional[Path] = None,
    ) -> None:
        self.profile = profile
        self.fetcher = fetcher
        self.converter = converter
        self.base_dir = base_dir or Path.cwd()

    def _locate(self, uri: str) -> Union[str, Unsupported]:
        """Return a fetchable location for uri, or the reason it cannot be fetched."""
        parsed = urlparse(uri)
        scheme = parsed.scheme.lower()
        if scheme in ("http", "https"):
            if self.profile.local_only:
                return Unsupported(REMOTE_DISABLED)
            return uri
        if scheme == "file":
            return unquote(parsed.path)
        if scheme:
            return Unsupported(f"unsupported URI scheme '{scheme}'")
        return str(self.base_dir / unquote(parsed.path))

    def resolve(self, uri: str, alt: str = "") -> Resolution:
        if not self.profile.inline_images:
            return Unsupported(NO_IMAGE_SUPPORT)

        location = self._locate(uri)
        if isinstance(location, Unsupported):
            logger.debug(f"Not showing image {uri}: {location.reason}")
            return location

        try:
            data = self.fetcher.fetch(location)
        except FetchError as e:
            logger.warning(f"Image {uri} not shown: {e}")
            return Unsupported(str(e))

        mime = sniff_mime(data)
        if mime is None:
            logger.warning(f"Image {uri} not shown: {UNRECOGNIZED_FORMAT}")
            return Unsupported(UNRECOGNIZED_FORMAT)

        if mime == SVG_MIME and self.profile.svg_needs_conversion:
            if self.converter is None:
                logger.warning(f"Image {uri} not shown: {NO_SVG_CONVERTER}")
                return Unsupported(NO_SVG_CONVERTER)
            try:
                data = self.converter.convert(data)
            except ConversionError as e:
                logger.warning(f"Image {uri} not shown: {e}")
                return Unsupported(str(e))
            mime = "image/png"

        name = PurePosixPath(urlparse(uri).path).name
        return Embedded(encode_inline_image(data, name), mime)
