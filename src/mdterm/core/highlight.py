"""Highlight bridge: Pygments token spans rendered through the escape emitter"""

import logging
from dataclasses import dataclass

from pygments import lex
from pygments.lexers import get_lexer_by_name
from pygments.styles import get_style_by_name
from pygments.token import Token, string_to_tokentype
from pygments.util import ClassNotFound

from mdterm.core.emit import COLOR_OFF, Color, color, emit
from mdterm.core.terminal import CapabilityProfile


logger = logging.getLogger(__name__)

PLAIN = "plain"
DEFAULT_THEME = "solarized-dark"


@dataclass(frozen=True)
class TokenSpan:
    text: str
    token_class: str                # dotted Pygments token type, or 'plain'


class HighlightBridge:
    """Turns fenced code into coloured output using a Pygments style as theme."""

    def __init__(self, theme: str = DEFAULT_THEME) -> None:
        try:
            self.style = get_style_by_name(theme)
        except ClassNotFound as e:
            raise ValueError(f"Unknown highlight theme '{theme}'") from e
        self.theme = theme

    def highlight(self, language: str, code: str) -> list[TokenSpan]:
        """Split code into spans that concatenate back to code exactly.

        Falls back to a single plain span for unknown languages, when the
        lexer raises, or when its output does not reproduce the input.
        """
        plain = [TokenSpan(code, PLAIN)]
        if not language or not code:
            return plain
        try:
            lexer = get_lexer_by_name(language, stripnl=False, stripall=False, ensurenl=False)
        except ClassNotFound:
            logger.debug(f"No lexer for language '{language}'")
            return plain

        try:
            spans = [TokenSpan(text, str(ttype)) for ttype, text in lex(code, lexer) if text]
        except Exception as e:
            logger.debug(f"Lexer for '{language}' failed: {e}")
            return plain
        if ''.join(s.text for s in spans) != code:
            logger.debug(f"Lexer for '{language}' altered the code; rendering it plain")
            return plain
        return spans

    def color_for(self, token_class: str) -> Color | None:
        """Theme colour of a token class, walking up to parent token types."""
        if token_class == PLAIN:
            return None
        ttype = string_to_tokentype(token_class.removeprefix("Token").lstrip("."))
        while ttype is not None:
            if self.style.styles_token(ttype):
                value = self.style.style_for_token(ttype).get('color')
                if value:
                    try:
                        return Color.from_hex(value)
                    except ValueError:
                        # ansi* colour names are left to the terminal default
                        return None
            ttype = ttype.parent
        return None

    def render(self, language: str, code: str, profile: CapabilityProfile) -> str:
        """Render code as coloured text; newlines are never inside a colour escape."""
        out = []
        for span in self.highlight(language, code):
            c = self.color_for(span.token_class)
            on = emit(color(c), profile) if c else ""
            off = emit(COLOR_OFF, profile) if on else ""
            pieces = span.text.split('\n')
            out.append('\n'.join(f"{on}{p}{off}" if p else p for p in pieces))
        return ''.join(out)
