"""Style stack: the nested formatting frames active at a point in the event stream"""

from dataclasses import dataclass
from typing import Iterator, Optional

from mdterm.core.errors import StackUnderflow
from mdterm.core.events import BlockKind, BlockQuote, InlineKind, List, ListItem


QUOTE_INDENT = 4
ITEM_INDENT = 3


@dataclass
class Frame:
    """An open block or inline element.

    For List frames ordinal is the number the next item receives; for
    ListItem frames it is the item's own number (None in bullet lists).
    width is the marker column width: the widest marker so far on a List
    frame, the indent of its content on a ListItem frame.
    """
    kind: BlockKind | InlineKind
    depth: int = 0                  # list nesting depth, 1 for a top-level list
    ordinal: Optional[int] = None
    width: int = ITEM_INDENT


class StyleStack:
    """Ordered frames, innermost last. Owned by a single render."""

    def __init__(self) -> None:
        self._frames: list[Frame] = []

    def __len__(self) -> int:
        return len(self._frames)

    def __iter__(self) -> Iterator[Frame]:
        return iter(self._frames)

    @property
    def top(self) -> Optional[Frame]:
        return self._frames[-1] if self._frames else None

    def push(self, frame: Frame) -> None:
        self._frames.append(frame)

    def pop(self) -> Frame:
        """Remove and return the innermost frame; StackUnderflow when empty."""
        if not self._frames:
            raise StackUnderflow("End event without a matching Start event")
        return self._frames.pop()

    def current_indent(self) -> int:
        """Columns to indent each emitted line, from enclosing list items and block quotes."""
        indent = 0
        for frame in self._frames:
            if isinstance(frame.kind, BlockQuote):
                indent += QUOTE_INDENT
            elif isinstance(frame.kind, ListItem):
                indent += frame.width
        return indent

    def innermost(self, kind: type) -> Optional[Frame]:
        """Return the nearest open frame whose kind is an instance of kind, else None."""
        for frame in reversed(self._frames):
            if isinstance(frame.kind, kind):
                return frame
        return None

    def list_depth(self) -> int:
        return sum(1 for frame in self._frames if isinstance(frame.kind, List))
