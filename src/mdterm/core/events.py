"""Document event stream: block/inline kinds and the events that carry them"""

from dataclasses import dataclass
from typing import Union


# --- block kinds ---

@dataclass(frozen=True)
class Heading:
    level: int                      # 1-6


@dataclass(frozen=True)
class Paragraph:
    pass


@dataclass(frozen=True)
class BlockQuote:
    pass


@dataclass(frozen=True)
class List:
    ordered: bool = False
    start: int = 1                  # first ordinal of an ordered list


@dataclass(frozen=True)
class ListItem:
    pass


@dataclass(frozen=True)
class CodeBlock:
    language: str = ""              # empty for indented code or fences without info


# --- inline kinds ---

@dataclass(frozen=True)
class Emphasis:
    pass


@dataclass(frozen=True)
class Strong:
    pass


@dataclass(frozen=True)
class Link:
    destination: str
    title: str = ""


@dataclass(frozen=True)
class Code:
    pass


BlockKind = Union[Heading, Paragraph, BlockQuote, List, ListItem, CodeBlock]
InlineKind = Union[Emphasis, Strong, Link, Code]


# --- events ---

@dataclass(frozen=True)
class StartBlock:
    kind: BlockKind


@dataclass(frozen=True)
class EndBlock:
    kind: BlockKind


@dataclass(frozen=True)
class StartInline:
    kind: InlineKind


@dataclass(frozen=True)
class EndInline:
    kind: InlineKind


@dataclass(frozen=True)
class Text:
    text: str


@dataclass(frozen=True)
class Image:
    uri: str
    alt: str = ""
    title: str = ""


@dataclass(frozen=True)
class LineBreak:
    pass


@dataclass(frozen=True)
class ThematicBreak:
    pass


Event = Union[StartBlock, EndBlock, StartInline, EndInline, Text, Image, LineBreak, ThematicBreak]
