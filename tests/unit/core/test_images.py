"""Unit tests for core/images.py"""

import base64
from dataclasses import replace

import httpx
import pytest

from mdterm.core.fetch import ConversionError, FetchError, ResourceFetcher
from mdterm.core.images import (
    NO_IMAGE_SUPPORT,
    NO_SVG_CONVERTER,
    REMOTE_DISABLED,
    SVG_MIME,
    UNRECOGNIZED_FORMAT,
    Embedded,
    ImageResolver,
    Unsupported,
    encode_inline_image,
    sniff_mime,
)


def test_no_image_support_skips_fetch(ansi_profile, fetcher_cls):
    """Terminals without inline images never trigger a fetch."""
    fetcher = fetcher_cls()
    resolver = ImageResolver(ansi_profile, fetcher)
    assert resolver.resolve("http://example.com/x.png", "x") == Unsupported(NO_IMAGE_SUPPORT)
    assert fetcher.calls == []


def test_remote_disabled_in_local_only(iterm2_profile, fetcher_cls):
    fetcher = fetcher_cls()
    resolver = ImageResolver(replace(iterm2_profile, local_only=True), fetcher)
    assert resolver.resolve("https://example.com/x.png") == Unsupported(REMOTE_DISABLED)
    assert fetcher.calls == []


def test_local_only_still_shows_local_files(iterm2_profile, fetcher_cls, png_bytes, tmp_path):
    location = str(tmp_path / "x.png")
    fetcher = fetcher_cls({location: png_bytes})
    resolver = ImageResolver(replace(iterm2_profile, local_only=True), fetcher, base_dir=tmp_path)
    assert isinstance(resolver.resolve("x.png"), Embedded)


def test_relative_path_resolves_against_base_dir(iterm2_profile, png_bytes, tmp_path):
    """A relative URI is read from the document directory and embedded."""
    (tmp_path / "img").mkdir()
    (tmp_path / "img" / "logo.png").write_bytes(png_bytes)
    resolver = ImageResolver(iterm2_profile, ResourceFetcher(), base_dir=tmp_path)
    result = resolver.resolve("img/logo.png", "logo")
    assert isinstance(result, Embedded)
    assert result.mime == "image/png"
    assert result.fragment.startswith("\x1b]1337;File=name=")
    assert base64.b64encode(png_bytes).decode() in result.fragment
    assert result.fragment.endswith("\x07")


def test_file_uri(iterm2_profile, png_bytes, tmp_path):
    path = tmp_path / "a b.png"
    path.write_bytes(png_bytes)
    resolver = ImageResolver(iterm2_profile, ResourceFetcher())
    assert isinstance(resolver.resolve(path.as_uri()), Embedded)


def test_fetch_404_is_unsupported(iterm2_profile):
    """An HTTP 404 degrades to Unsupported carrying the reason."""
    transport = httpx.MockTransport(lambda request: httpx.Response(404))
    fetcher = ResourceFetcher(client=httpx.Client(transport=transport))
    resolver = ImageResolver(iterm2_profile, fetcher)
    result = resolver.resolve("http://example.com/x.png", "x")
    assert result == Unsupported("HTTP 404 for http://example.com/x.png")


def test_missing_file_is_unsupported(iterm2_profile, tmp_path):
    resolver = ImageResolver(iterm2_profile, ResourceFetcher(), base_dir=tmp_path)
    result = resolver.resolve("missing.png")
    assert isinstance(result, Unsupported)
    assert "file not found" in result.reason


def test_svg_without_converter(iterm2_profile, fetcher_cls, svg_bytes):
    fetcher = fetcher_cls({"http://example.com/x.svg": svg_bytes})
    resolver = ImageResolver(iterm2_profile, fetcher, converter=None)
    assert resolver.resolve("http://example.com/x.svg") == Unsupported(NO_SVG_CONVERTER)


def test_svg_is_converted(iterm2_profile, fetcher_cls, converter_cls, svg_bytes, png_bytes):
    fetcher = fetcher_cls({"http://example.com/x.svg": svg_bytes})
    converter = converter_cls(png_bytes)
    resolver = ImageResolver(iterm2_profile, fetcher, converter=converter)
    result = resolver.resolve("http://example.com/x.svg")
    assert isinstance(result, Embedded)
    assert result.mime == "image/png"
    assert converter.calls == 1


def test_svg_conversion_failure(iterm2_profile, fetcher_cls, converter_cls, svg_bytes):
    fetcher = fetcher_cls({"http://example.com/x.svg": svg_bytes})
    converter = converter_cls(error=ConversionError("rsvg-convert failed: bad svg"))
    resolver = ImageResolver(iterm2_profile, fetcher, converter=converter)
    assert resolver.resolve("http://example.com/x.svg") == Unsupported("rsvg-convert failed: bad svg")


def test_svg_passthrough_when_terminal_renders_svg(iterm2_profile, fetcher_cls, converter_cls, svg_bytes):
    """Terminals that display SVG themselves get the original bytes."""
    profile = replace(iterm2_profile, svg_needs_conversion=False)
    converter = converter_cls()
    fetcher = fetcher_cls({"http://example.com/x.svg": svg_bytes})
    result = ImageResolver(profile, fetcher, converter=converter).resolve("http://example.com/x.svg")
    assert isinstance(result, Embedded)
    assert result.mime == SVG_MIME
    assert converter.calls == 0


def test_fetch_error_from_collaborator(iterm2_profile, fetcher_cls):
    fetcher = fetcher_cls(error=FetchError("failed to fetch http://x/y.png: timed out"))
    result = ImageResolver(iterm2_profile, fetcher).resolve("http://x/y.png")
    assert result == Unsupported("failed to fetch http://x/y.png: timed out")


def test_unrecognized_payload(iterm2_profile, fetcher_cls):
    fetcher = fetcher_cls({"http://x/page": b"<html><body>not found</body></html>"})
    assert ImageResolver(iterm2_profile, fetcher).resolve("http://x/page") == Unsupported(UNRECOGNIZED_FORMAT)


def test_unsupported_scheme(iterm2_profile, fetcher_cls):
    fetcher = fetcher_cls()
    result = ImageResolver(iterm2_profile, fetcher).resolve("data:image/png;base64,AAAA")
    assert result == Unsupported("unsupported URI scheme 'data'")
    assert fetcher.calls == []


def test_each_image_resolves_independently(iterm2_profile, fetcher_cls, png_bytes):
    """Resolving the same URI twice fetches twice."""
    fetcher = fetcher_cls({"http://x/a.png": png_bytes})
    resolver = ImageResolver(iterm2_profile, fetcher)
    resolver.resolve("http://x/a.png")
    resolver.resolve("http://x/a.png")
    assert fetcher.calls == ["http://x/a.png", "http://x/a.png"]


@pytest.mark.parametrize("data,expected", [
    (b"\x89PNG\r\n\x1a\nrest", "image/png"),
    (b"\xff\xd8\xff\xe0rest", "image/jpeg"),
    (b"GIF89arest", "image/gif"),
    (b"RIFF\x00\x00\x00\x00WEBPVP8 ", "image/webp"),
    (b"  <svg xmlns='http://www.w3.org/2000/svg'/>", SVG_MIME),
    (b"<?xml version='1.0'?><svg/>", SVG_MIME),
    (b"<?xml version='1.0'?><html/>", None),
    (b"plain text", None),
])
def test_sniff_mime(data, expected):
    assert sniff_mime(data) == expected


def test_encode_inline_image():
    fragment = encode_inline_image(b"abc", "x.png")
    assert fragment == "\x1b]1337;File=name=eC5wbmc=;size=3;inline=1:YWJj\x07"


def test_encode_inline_image_without_name():
    assert encode_inline_image(b"abc") == "\x1b]1337;File=size=3;inline=1:YWJj\x07"
