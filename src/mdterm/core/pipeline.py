"""Pipeline step functions: parse, build collaborators, render, and write"""

import logging
from typing import Optional, TextIO

from mdterm.config import Settings
from mdterm.core.fetch import ResourceFetcher, find_svg_converter
from mdterm.core.highlight import HighlightBridge
from mdterm.core.images import ImageResolver
from mdterm.core.models import ParsedDoc
from mdterm.core.parse import parse_source
from mdterm.core.render import Renderer
from mdterm.core.terminal import CapabilityProfile


logger = logging.getLogger(__name__)


def render_doc(
    doc: ParsedDoc,
    profile: CapabilityProfile,
    settings: Settings,
    fetcher: ResourceFetcher,
    highlighter: HighlightBridge,
    columns: Optional[int] = None,
    ) -> str:
    """Render one parsed document; a fresh renderer and resolver per document."""
    converter = find_svg_converter(settings.fetch_timeout) if profile.svg_needs_conversion else None
    resolver = ImageResolver(profile, fetcher, converter, base_dir=doc.base_dir)
    renderer = Renderer(
        profile,
        images=resolver,
        highlighter=highlighter,
        columns=columns,
        base_dir=doc.base_dir,
    )
    return renderer.render(doc.events)


def run_render(
    sources: list[str],
    settings: Settings,
    profile: CapabilityProfile,
    out: TextIO,
    columns: Optional[int] = None,
    ) -> int:
    """Render each source in order to out. Returns the number of documents rendered.

    Raises ValueError for an unknown theme and RuntimeError naming the source
    that failed to read, parse, or render.
    """
    highlighter = HighlightBridge(settings.theme)
    rendered = 0
    with ResourceFetcher(timeout=settings.fetch_timeout) as fetcher:
        for source in sources:
            try:
                doc = parse_source(source, settings.parser_config, settings.strip_frontmatter)
                output = render_doc(doc, profile, settings, fetcher, highlighter, columns)
            except (OSError, ValueError) as e:
                # UnicodeDecodeError and MalformedEventStream are both ValueErrors
                raise RuntimeError(f"Failed to render {source}: {e}") from e
            if rendered:
                out.write('\n')
            out.write(output)
            out.flush()
            rendered += 1
            logger.debug(f"Rendered {source}")
    return rendered
