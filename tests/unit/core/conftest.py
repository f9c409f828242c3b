"""Shared fixtures for core unit tests"""

import pytest

from mdterm.core.parse import parse_text


SAMPLE_MD = """\
# Heading 1

A paragraph with **bold** text and a [link](https://example.com).

## Heading 2

- item one
- item two

![logo](logo.png)

```python
print("hello")
```

---

> Quoted text.
"""

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16
SVG_BYTES = b'<?xml version="1.0"?>\n<svg xmlns="http://www.w3.org/2000/svg" width="1" height="1"></svg>\n'


class FakeFetcher:
    """Serves fixed bytes per location and records every fetch."""

    def __init__(self, payloads: dict[str, bytes] = None, error: Exception = None):
        self.payloads = payloads or {}
        self.error = error
        self.calls: list[str] = []

    def fetch(self, location: str) -> bytes:
        self.calls.append(location)
        if self.error is not None:
            raise self.error
        return self.payloads[location]


class FakeConverter:
    def __init__(self, output: bytes = PNG_BYTES, error: Exception = None):
        self.output = output
        self.error = error
        self.calls = 0

    def convert(self, svg: bytes) -> bytes:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.output


def events_of(md: str) -> list:
    return parse_text(md)[2]


@pytest.fixture(name="sample_events")
def sample_events_fixture():
    return events_of(SAMPLE_MD)


@pytest.fixture(name="events_of")
def events_of_fixture():
    return events_of


@pytest.fixture(name="png_bytes")
def png_bytes_fixture():
    return PNG_BYTES


@pytest.fixture(name="svg_bytes")
def svg_bytes_fixture():
    return SVG_BYTES


@pytest.fixture(name="fetcher_cls")
def fetcher_cls_fixture():
    return FakeFetcher


@pytest.fixture(name="converter_cls")
def converter_cls_fixture():
    return FakeConverter
