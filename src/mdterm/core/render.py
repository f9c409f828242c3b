"""Render loop: drives the style stack, emitter, image resolver and highlighter over an event stream"""

import logging
import re
from enum import Enum, auto
from pathlib import Path
from typing import Iterable, Iterator, Optional
from urllib.parse import unquote, urlparse

from mdterm.core import emit as esc
from mdterm.core import events as ev
from mdterm.core.errors import UnbalancedEvent, UnterminatedFrame
from mdterm.core.highlight import HighlightBridge
from mdterm.core.images import NO_IMAGE_SUPPORT, Embedded, ImageResolver, Resolution, Unsupported
from mdterm.core.style import ITEM_INDENT, Frame, StyleStack
from mdterm.core.terminal import CapabilityProfile


logger = logging.getLogger(__name__)

DEFAULT_RULE_WIDTH = 40
BULLETS = ("•", "◦", "▪")

_CONTROL_RE = re.compile(r'[\x00-\x08\x0b-\x1f\x7f]')
_ESCAPES_ONLY_RE = re.compile(r'(?:\x1b\[[0-9;]*m|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\))+')

_INLINE_KINDS = (ev.Emphasis, ev.Strong, ev.Link, ev.Code)
_FRAME_STYLE = {
    ev.Heading:  esc.HEADING_STYLE,
    ev.Emphasis: esc.ITALIC_ON,
    ev.Strong:   esc.BOLD_ON,
    ev.Code:     esc.CODE_ON,
    ev.Link:     esc.UNDERLINE_ON,
}


class RenderState(Enum):
    START     = auto()
    IN_BLOCK  = auto()
    IN_INLINE = auto()
    END       = auto()


def sanitize(text: str) -> str:
    """Drop control characters so document text cannot inject escape sequences."""
    return _CONTROL_RE.sub('', text)


def image_fallback(alt: str, uri: str) -> str:
    """Plain text shown in place of an image that cannot be displayed."""
    alt = sanitize(alt).strip()
    uri = sanitize(uri)
    return f"{alt} ({uri})" if alt else f"({uri})"


class Renderer:
    """Renders document events for one capability profile.

    The profile and collaborators are shared between documents; all per-document
    state is rebuilt at the start of every render, so rendering the same
    events twice yields identical output.
    """

    def __init__(
        self,
        profile: CapabilityProfile,
        images: Optional[ImageResolver] = None,
        highlighter: Optional[HighlightBridge] = None,
        columns: Optional[int] = None,
        base_dir: Optional[Path] = None,
    ) -> None:
        self.profile = profile
        self.images = images
        self.highlighter = highlighter
        self.columns = columns
        self.base_dir = base_dir
        self._reset()

    # --- public ---

    def render(self, events: Iterable[ev.Event]) -> str:
        """Render a complete event stream to a string."""
        return ''.join(self.iter_render(events))

    def iter_render(self, events: Iterable[ev.Event]) -> Iterator[str]:
        """Yield output fragments in document order.

        Raises a MalformedEventStream subclass when Start/End events do not pair.
        """
        self._reset()
        handlers = {
            ev.StartBlock:    self._start_block,
            ev.EndBlock:      self._end_block,
            ev.StartInline:   self._start_inline,
            ev.EndInline:     self._end_inline,
            ev.Text:          self._text,
            ev.Image:         self._image,
            ev.LineBreak:     self._line_break,
            ev.ThematicBreak: self._thematic_break,
        }
        for event in events:
            handlers[type(event)](event)
            self.state = self._derive_state()
            yield from self._drain()

        if len(self._stack):
            innermost = type(self._stack.top.kind).__name__
            raise UnterminatedFrame(f"stream ended with {len(self._stack)} open frame(s), innermost {innermost}")
        self._end_line()
        self._flush()
        self.state = RenderState.END
        yield from self._drain()

    # --- output primitives ---

    def _reset(self) -> None:
        self._stack = StyleStack()
        self._out: list[str] = []
        self._pending: list[str] = []       # escapes waiting for the next text or line end
        self._at_line_start = True
        self._written = False
        self._margin = False                # a blank line is due before the next block
        self._after_marker = False          # a list marker was just written
        self._marker_end = 0                # output column after that marker
        self._headings = 0
        self.state = RenderState.START

    def _drain(self) -> Iterator[str]:
        if self._out:
            chunk = ''.join(self._out)
            self._out.clear()
            yield chunk

    def _flush(self) -> None:
        self._out.extend(self._pending)
        self._pending.clear()

    def _put(self, fragment: str) -> None:
        """Queue an escape sequence without changing the line state."""
        self._pending.append(fragment)

    def _write(self, text: str) -> None:
        """Write text, indenting every line that starts here."""
        for i, line in enumerate(text.split('\n')):
            if i:
                self._flush()
                self._out.append('\n')
                self._at_line_start = True
            if line:
                if self._at_line_start:
                    self._out.append(' ' * self._stack.current_indent())
                    self._at_line_start = False
                self._flush()
                self._out.append(line)
                self._written = True
                self._after_marker = False

    def _emit(self, request: esc.StyleRequest) -> None:
        fragment = esc.emit(request, self.profile)
        if not fragment:
            return
        if _ESCAPES_ONLY_RE.fullmatch(fragment):
            self._put(fragment)
        else:
            self._write(fragment)

    def _end_line(self) -> None:
        if not self._at_line_start:
            self._flush()
            self._out.append('\n')
            self._at_line_start = True

    def _open_block(self, kind: ev.BlockKind) -> None:
        """Separate a new block from preceding output."""
        if self._after_marker:
            # first leaf block of a list item shares the marker's line
            if not isinstance(kind, (ev.List, ev.BlockQuote)):
                self._pad_after_marker()
            return
        self._end_line()
        if self._margin and self._written:
            self._out.append('\n')
        self._margin = False

    def _pad_after_marker(self) -> None:
        """Move from the end of a list marker to the current indent column."""
        self._out.append(' ' * max(0, self._stack.current_indent() - self._marker_end))
        self._after_marker = False

    def _finish_block(self, margin: bool = True) -> None:
        self._end_line()
        self._margin = margin

    def _restore(self) -> None:
        """Reset attributes, then reapply the styles of every open frame."""
        self._emit(esc.RESET)
        for frame in self._stack:
            style = _FRAME_STYLE.get(type(frame.kind))
            if style is not None:
                self._emit(style)

    def _close(self, kind) -> Frame:
        top = self._stack.top
        if top is not None and type(top.kind) is not type(kind):
            raise UnbalancedEvent(f"{type(kind).__name__} end event closes open {type(top.kind).__name__}")
        return self._stack.pop()

    def _derive_state(self) -> RenderState:
        top = self._stack.top
        if top is None:
            return RenderState.END
        if isinstance(top.kind, _INLINE_KINDS):
            return RenderState.IN_INLINE
        return RenderState.IN_BLOCK

    def _link_target(self, destination: str) -> str:
        """Resolve a relative link destination against the document directory."""
        parsed = urlparse(destination)
        if self.base_dir is None or parsed.scheme or not parsed.path:
            return destination
        target = (self.base_dir / unquote(parsed.path)).absolute().as_uri()
        return f"{target}#{parsed.fragment}" if parsed.fragment else target

    # --- event handlers ---

    def _start_block(self, event: ev.StartBlock) -> None:
        kind = event.kind
        if isinstance(kind, ev.ListItem):
            self._open_item(kind)
            return

        self._open_block(kind)
        frame = Frame(kind)
        if isinstance(kind, ev.List):
            frame.depth = self._stack.list_depth() + 1
            frame.ordinal = kind.start if kind.ordered else None
        if isinstance(kind, ev.Heading):
            self._headings += 1
            self._emit(esc.jump_mark(f"heading-{self._headings}"))
        self._stack.push(frame)
        if isinstance(kind, ev.Heading):
            self._emit(esc.heading_marker(kind.level))

    def _open_item(self, kind: ev.ListItem) -> None:
        if self._after_marker:
            self._pad_after_marker()
        else:
            self._end_line()
            if self._margin and self._written:
                self._out.append('\n')
            self._margin = False

        parent = self._stack.innermost(ev.List)
        depth = parent.depth if parent else 1
        ordinal = None
        if parent is not None and parent.ordinal is not None:
            ordinal = parent.ordinal
            parent.ordinal += 1
            marker = f"{ordinal}."
        else:
            marker = BULLETS[(depth - 1) % len(BULLETS)]

        # markers of one list share the widest width seen so far
        width = max(ITEM_INDENT, len(marker) + 1)
        if parent is not None:
            parent.width = width = max(parent.width, width)

        self._marker_end = self._stack.current_indent() + width
        self._write(marker.ljust(width))
        self._stack.push(Frame(kind, depth=depth, ordinal=ordinal, width=width))
        self._after_marker = True

    def _end_block(self, event: ev.EndBlock) -> None:
        frame = self._close(event.kind)
        kind = frame.kind
        if isinstance(kind, ev.Heading):
            self._restore()
            self._finish_block()
        elif isinstance(kind, ev.ListItem):
            self._end_line()
            self._after_marker = False
        elif isinstance(kind, ev.List):
            # nested lists stay tight against the item that follows them
            self._finish_block(margin=self._stack.innermost(ev.ListItem) is None)
        else:
            self._finish_block()

    def _start_inline(self, event: ev.StartInline) -> None:
        kind = event.kind
        self._stack.push(Frame(kind))
        if isinstance(kind, ev.Link):
            self._emit(esc.link_open(sanitize(self._link_target(kind.destination))))
        self._emit(_FRAME_STYLE[type(kind)])

    def _end_inline(self, event: ev.EndInline) -> None:
        frame = self._close(event.kind)
        self._restore()
        if isinstance(frame.kind, ev.Link):
            self._emit(esc.link_close(sanitize(frame.kind.destination)))

    def _text(self, event: ev.Text) -> None:
        text = sanitize(event.text)
        code = self._stack.innermost(ev.CodeBlock)
        if code is not None and self.highlighter is not None:
            text = self.highlighter.render(code.kind.language, text, self.profile)
        self._write(text)

    def _image(self, event: ev.Image) -> None:
        result: Resolution
        if self.images is None:
            result = Unsupported(NO_IMAGE_SUPPORT)
        else:
            result = self.images.resolve(event.uri, event.alt)
        if isinstance(result, Embedded):
            self._write(result.fragment)
        else:
            self._write(image_fallback(event.alt, event.uri))

    def _line_break(self, event: ev.LineBreak) -> None:
        self._write('\n')

    def _thematic_break(self, event: ev.ThematicBreak) -> None:
        self._open_block(ev.Paragraph())
        indent = self._stack.current_indent()
        width = max(1, self.columns - indent) if self.columns else DEFAULT_RULE_WIDTH
        self._emit(esc.rule(width))
        self._finish_block()
