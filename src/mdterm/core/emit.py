"""Escape emitter: semantic style requests to terminal output fragments

Every request maps to a fragment through the capability profile alone, so the
same (request, profile) pair always yields the same string. Requests whose
capability is missing degrade to plain text or to nothing.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional

from mdterm.core.terminal import CapabilityProfile


CSI = "\x1b["
OSC = "\x1b]"
ST = "\x1b\\"
BEL = "\x07"

HEADING_GLYPH = "┄"
RULE_GLYPH = "─"

# xterm default palette for the 16 base colours
BASE_PALETTE: tuple[tuple[int, int, int], ...] = (
    (0, 0, 0), (205, 0, 0), (0, 205, 0), (205, 205, 0),
    (0, 0, 238), (205, 0, 205), (0, 205, 205), (229, 229, 229),
    (127, 127, 127), (255, 0, 0), (0, 255, 0), (255, 255, 0),
    (92, 92, 255), (255, 0, 255), (0, 255, 255), (255, 255, 255),
)
CUBE_LEVELS = (0, 95, 135, 175, 215, 255)


class Effect(Enum):
    BOLD_ON       = auto()
    BOLD_OFF      = auto()
    ITALIC_ON     = auto()
    ITALIC_OFF    = auto()
    UNDERLINE_ON  = auto()
    UNDERLINE_OFF = auto()
    CODE_ON       = auto()
    HEADING_STYLE = auto()
    HEADING_MARK  = auto()
    LINK_OPEN     = auto()
    LINK_CLOSE    = auto()
    JUMP_MARK     = auto()
    COLOR         = auto()
    COLOR_OFF     = auto()
    RESET         = auto()
    RULE          = auto()


@dataclass(frozen=True)
class Color:
    r: int
    g: int
    b: int

    @classmethod
    def from_hex(cls, value: str) -> "Color":
        """Parse 'rrggbb' or '#rrggbb'."""
        value = value.lstrip('#')
        if len(value) == 3:
            value = ''.join(c * 2 for c in value)
        return cls(int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16))


@dataclass(frozen=True)
class StyleRequest:
    effect: Effect
    level: int = 0                  # heading level, or rule width
    target: str = ""                # link destination or jump mark label
    color: Optional[Color] = None


BOLD_ON = StyleRequest(Effect.BOLD_ON)
BOLD_OFF = StyleRequest(Effect.BOLD_OFF)
ITALIC_ON = StyleRequest(Effect.ITALIC_ON)
ITALIC_OFF = StyleRequest(Effect.ITALIC_OFF)
UNDERLINE_ON = StyleRequest(Effect.UNDERLINE_ON)
UNDERLINE_OFF = StyleRequest(Effect.UNDERLINE_OFF)
CODE_ON = StyleRequest(Effect.CODE_ON)
HEADING_STYLE = StyleRequest(Effect.HEADING_STYLE)
COLOR_OFF = StyleRequest(Effect.COLOR_OFF)
RESET = StyleRequest(Effect.RESET)


def heading_marker(level: int) -> StyleRequest:
    return StyleRequest(Effect.HEADING_MARK, level=level)


def link_open(destination: str) -> StyleRequest:
    return StyleRequest(Effect.LINK_OPEN, target=destination)


def link_close(destination: str) -> StyleRequest:
    return StyleRequest(Effect.LINK_CLOSE, target=destination)


def jump_mark(label: str = "") -> StyleRequest:
    return StyleRequest(Effect.JUMP_MARK, target=label)


def color(value: Color) -> StyleRequest:
    return StyleRequest(Effect.COLOR, color=value)


def rule(width: int) -> StyleRequest:
    return StyleRequest(Effect.RULE, level=width)


def sgr(*codes: int | str) -> str:
    return f"{CSI}{';'.join(str(c) for c in codes)}m"


_SGR = {
    Effect.BOLD_ON:       sgr(1),
    Effect.BOLD_OFF:      sgr(22),
    Effect.ITALIC_ON:     sgr(3),
    Effect.ITALIC_OFF:    sgr(23),
    Effect.UNDERLINE_ON:  sgr(4),
    Effect.UNDERLINE_OFF: sgr(24),
    Effect.CODE_ON:       sgr(33),
    Effect.HEADING_STYLE: sgr(1, 34),
    Effect.COLOR_OFF:     sgr(39),
    Effect.RESET:         sgr(0),
}


def _distance(a: tuple[int, int, int], b: tuple[int, int, int]) -> int:
    return sum((x - y) ** 2 for x, y in zip(a, b))


def nearest_256(c: Color) -> int:
    """Index of the closest xterm-256 colour among the 6x6x6 cube and the grey ramp."""
    rgb = (c.r, c.g, c.b)
    steps = [min(range(6), key=lambda i: abs(CUBE_LEVELS[i] - v)) for v in rgb]
    cube = tuple(CUBE_LEVELS[i] for i in steps)
    cube_index = 16 + 36 * steps[0] + 6 * steps[1] + steps[2]

    grey_step = max(0, min(23, round((sum(rgb) / 3 - 8) / 10)))
    grey_value = 8 + 10 * grey_step
    grey = (grey_value, grey_value, grey_value)

    if _distance(rgb, grey) < _distance(rgb, cube):
        return 232 + grey_step
    return cube_index


def nearest_16(c: Color) -> int:
    """Index (0-15) of the closest base palette colour."""
    rgb = (c.r, c.g, c.b)
    return min(range(16), key=lambda i: _distance(rgb, BASE_PALETTE[i]))


def _foreground(c: Color, profile: CapabilityProfile) -> str:
    if profile.true_color:
        return sgr(38, 2, c.r, c.g, c.b)
    if profile.colors_256:
        return sgr(38, 5, nearest_256(c))
    index = nearest_16(c)
    return sgr(30 + index if index < 8 else 90 + index - 8)


def emit(request: StyleRequest, profile: CapabilityProfile) -> str:
    """Return the output fragment for request on a terminal described by profile."""
    effect = request.effect

    if effect == Effect.HEADING_MARK:
        marker = HEADING_GLYPH * request.level + " "
        return _SGR[Effect.HEADING_STYLE] + marker if profile.ansi else marker

    if effect == Effect.RULE:
        line = RULE_GLYPH * request.level
        return sgr(32) + line + _SGR[Effect.COLOR_OFF] if profile.ansi else line

    if effect == Effect.LINK_OPEN:
        return f"{OSC}8;;{request.target}{ST}" if profile.hyperlinks else ""

    if effect == Effect.LINK_CLOSE:
        return f"{OSC}8;;{ST}" if profile.hyperlinks else f" ({request.target})"

    if effect == Effect.JUMP_MARK:
        return f"{OSC}1337;SetMark{BEL}" if profile.jump_marks else ""

    if not profile.ansi:
        return ""

    if effect == Effect.COLOR:
        return _foreground(request.color, profile)

    return _SGR[effect]
