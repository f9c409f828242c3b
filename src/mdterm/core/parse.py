"""Source reading, frontmatter extraction, and markdown-it token to event conversion"""

import logging
import re
import sys
from pathlib import Path
from typing import Any, Iterator

import yaml
from markdown_it import MarkdownIt

from mdterm.core import events as ev
from mdterm.core.models import ParsedDoc


logger = logging.getLogger(__name__)

FRONTMATTER_RE = re.compile(r'^---\s*\n(.*?)\n---\s*\n', re.DOTALL)
STDIN = '-'

_BLOCK_OPEN = {
    'paragraph_open':  ev.Paragraph,
    'blockquote_open': ev.BlockQuote,
    'list_item_open':  ev.ListItem,
}
_BLOCK_CLOSE = {
    'heading_close', 'paragraph_close', 'blockquote_close', 'bullet_list_close',
    'ordered_list_close', 'list_item_close',
}
_INLINE_OPEN = {
    'em_open':     ev.Emphasis,
    'strong_open': ev.Strong,
}
_INLINE_CLOSE = {'em_close', 'strong_close', 'link_close'}


def _make_parser(preset: str) -> MarkdownIt:
    """Build a MarkdownIt instance for the given preset name."""
    try:
        return MarkdownIt(preset, options_update={"linkify": False})
    except KeyError as e:
        raise ValueError(f"Unknown parser preset '{preset}'") from e


def _strip_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """Return (frontmatter_dict, body) with YAML header removed."""
    m = FRONTMATTER_RE.match(text)
    if m:
        try:
            fm = yaml.safe_load(m.group(1)) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML frontmatter: {e}") from e
        if not isinstance(fm, dict):
            raise ValueError(f"Invalid YAML frontmatter: expected a mapping, got {type(fm).__name__}")
        return fm, text[m.end():]
    return {}, text


def _heading_level(token) -> int:
    """Extract heading level (1-6) from a heading_open token tag."""
    return int(token.tag[1:])


def _plain_text(children) -> str:
    """Flatten inline children to their text content (used for image alt text)."""
    parts = []
    for child in children or []:
        if child.type in ('text', 'code_inline', 'html_inline'):
            parts.append(child.content)
        elif child.type in ('softbreak', 'hardbreak'):
            parts.append(' ')
        elif child.type == 'image':
            parts.append(_plain_text(child.children))
    return ''.join(parts)


def _code_block(language: str, content: str) -> list[ev.Event]:
    kind = ev.CodeBlock(language)
    return [ev.StartBlock(kind), ev.Text(content), ev.EndBlock(kind)]


def _inline_events(children, stack: list) -> Iterator[ev.Event]:
    """Convert the children of an inline token to events."""
    for tok in children or []:
        if tok.type == 'text':
            if tok.content:
                yield ev.Text(tok.content)
        elif tok.type in ('softbreak', 'hardbreak'):
            yield ev.LineBreak()
        elif tok.type in _INLINE_OPEN:
            kind = _INLINE_OPEN[tok.type]()
            stack.append(kind)
            yield ev.StartInline(kind)
        elif tok.type == 'link_open':
            kind = ev.Link(str(tok.attrGet('href') or ''), str(tok.attrGet('title') or ''))
            stack.append(kind)
            yield ev.StartInline(kind)
        elif tok.type in _INLINE_CLOSE:
            yield ev.EndInline(stack.pop())
        elif tok.type == 'code_inline':
            yield ev.StartInline(ev.Code())
            yield ev.Text(tok.content)
            yield ev.EndInline(ev.Code())
        elif tok.type == 'image':
            yield ev.Image(
                uri=str(tok.attrGet('src') or ''),
                alt=_plain_text(tok.children),
                title=str(tok.attrGet('title') or ''),
            )
        elif tok.type == 'html_inline':
            yield ev.Text(tok.content)
        else:
            logger.debug(f"Skipping unsupported inline token {tok.type}")


def tokens_to_events(tokens: list) -> list[ev.Event]:
    """Convert a flat markdown-it token stream into ordered document events.

    Hidden paragraphs (tight list items) produce no block events; their text
    lands directly inside the list item. End events always carry the same kind
    value as their matching start event.
    """
    events: list[ev.Event] = []
    stack: list = []

    for tok in tokens:
        if tok.type == 'inline':
            events.extend(_inline_events(tok.children, stack))
        elif tok.type == 'paragraph_open' and tok.hidden:
            continue
        elif tok.type == 'paragraph_close' and tok.hidden:
            continue
        elif tok.type == 'heading_open':
            kind = ev.Heading(_heading_level(tok))
            stack.append(kind)
            events.append(ev.StartBlock(kind))
        elif tok.type == 'bullet_list_open':
            kind = ev.List(ordered=False)
            stack.append(kind)
            events.append(ev.StartBlock(kind))
        elif tok.type == 'ordered_list_open':
            start = tok.attrGet('start')
            kind = ev.List(ordered=True, start=int(start) if start is not None else 1)
            stack.append(kind)
            events.append(ev.StartBlock(kind))
        elif tok.type in _BLOCK_OPEN:
            kind = _BLOCK_OPEN[tok.type]()
            stack.append(kind)
            events.append(ev.StartBlock(kind))
        elif tok.type in _BLOCK_CLOSE:
            events.append(ev.EndBlock(stack.pop()))
        elif tok.type == 'fence':
            info = tok.info.strip().split()
            events.extend(_code_block(info[0] if info else '', tok.content))
        elif tok.type == 'code_block':
            events.extend(_code_block('', tok.content))
        elif tok.type == 'html_block':
            events.extend(_code_block('html', tok.content))
        elif tok.type == 'hr':
            events.append(ev.ThematicBreak())
        else:
            logger.debug(f"Skipping unsupported block token {tok.type}")

    return events


def parse_text(text: str, parser_config: str = 'commonmark', strip_frontmatter: bool = True) -> tuple[dict[str, Any], str, list[ev.Event]]:
    """Parse markdown text into (frontmatter, body, events)."""
    frontmatter, body = _strip_frontmatter(text) if strip_frontmatter else ({}, text)
    tokens = _make_parser(parser_config).parse(body)
    return frontmatter, body, tokens_to_events(tokens)


def read_source(source: str) -> tuple[str, Path]:
    """Return (text, base_dir) for a file path, or stdin when source is '-'."""
    if source == STDIN:
        return sys.stdin.read(), Path.cwd()
    path = Path(source)
    return path.read_text(encoding='utf-8'), path.resolve().parent


def parse_source(source: str, parser_config: str = 'commonmark', strip_frontmatter: bool = True) -> ParsedDoc:
    """Read and parse a single markdown source into a ParsedDoc."""
    text, base_dir = read_source(source)
    frontmatter, body, events = parse_text(text, parser_config, strip_frontmatter)
    return ParsedDoc(
        source=source,
        base_dir=base_dir,
        markdown=body,
        frontmatter=frontmatter,
        events=events,
    )
