"""Intermediate data models for the parse and render pipeline"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from mdterm.core.events import Event


@dataclass
class ParsedDoc:
    """Parse result carrying the document event stream; not persisted."""
    source:      str           # path as given on the command line, or '-' for stdin
    base_dir:    Path          # directory relative image and link targets resolve against
    markdown:    str           # body only (frontmatter stripped)
    frontmatter: dict[str, Any]
    events:      list[Event]
