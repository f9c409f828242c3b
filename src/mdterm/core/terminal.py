"""Terminal capability profile and detection from the process environment"""

import logging
import os
import shutil
import sys
from dataclasses import dataclass, replace
from enum import Enum
from typing import Mapping, Optional


logger = logging.getLogger(__name__)

VTE_HYPERLINK_VERSION = 5000    # VTE 0.50 added OSC 8 support


class TerminalKind(str, Enum):
    """Terminal families with distinct rendering capabilities."""
    dumb   = "dumb"
    ansi   = "ansi"
    vte    = "vte"
    iterm2 = "iterm2"


@dataclass(frozen=True)
class CapabilityProfile:
    """What a terminal can render. Built once per run, never mutated."""
    terminal:             TerminalKind = TerminalKind.dumb
    ansi:                 bool = False    # SGR styling and the 16 base colours
    colors_256:           bool = False
    true_color:           bool = False
    inline_images:        bool = False
    hyperlinks:           bool = False    # OSC 8
    jump_marks:           bool = False
    svg_needs_conversion: bool = False
    local_only:           bool = False    # never fetch remote images


def _vte_version(env: Mapping[str, str]) -> int:
    try:
        return int(env.get("VTE_VERSION", "0"))
    except ValueError:
        return 0


def detect_terminal(env: Mapping[str, str], is_tty: bool, colour: Optional[bool] = None) -> TerminalKind:
    """Identify the terminal family.

    colour=False always yields dumb; colour=True keeps styling on a non-TTY.
    """
    if colour is False:
        return TerminalKind.dumb
    if not is_tty and colour is None:
        return TerminalKind.dumb
    if env.get("TERM") == "dumb" and colour is None:
        return TerminalKind.dumb
    if env.get("TERM_PROGRAM") == "iTerm.app":
        return TerminalKind.iterm2
    if _vte_version(env) >= VTE_HYPERLINK_VERSION:
        return TerminalKind.vte
    return TerminalKind.ansi


def profile_for(kind: TerminalKind, env: Mapping[str, str] | None = None, local_only: bool = False) -> CapabilityProfile:
    """Return the capability profile of a terminal family.

    For plain ANSI terminals colour depth is refined from TERM and COLORTERM.
    """
    env = env or {}
    if kind == TerminalKind.dumb:
        profile = CapabilityProfile()
    elif kind == TerminalKind.iterm2:
        profile = CapabilityProfile(
            terminal=kind, ansi=True, colors_256=True, true_color=True,
            inline_images=True, hyperlinks=True, jump_marks=True, svg_needs_conversion=True,
        )
    elif kind == TerminalKind.vte:
        profile = CapabilityProfile(
            terminal=kind, ansi=True, colors_256=True, true_color=True, hyperlinks=True,
        )
    else:
        true_color = env.get("COLORTERM", "").lower() in ("truecolor", "24bit")
        profile = CapabilityProfile(
            terminal=kind,
            ansi=True,
            colors_256=true_color or "256color" in env.get("TERM", ""),
            true_color=true_color,
        )
    return replace(profile, local_only=local_only)


def detect_profile(colour: Optional[bool] = None, local_only: bool = False) -> CapabilityProfile:
    """Detect the capability profile of the terminal attached to stdout."""
    env = dict(os.environ)
    kind = detect_terminal(env, sys.stdout.isatty(), colour)
    profile = profile_for(kind, env, local_only)
    logger.debug(f"Detected terminal {kind.value}: {profile}")
    return profile


def terminal_columns() -> Optional[int]:
    """Return the width of the terminal on stdout, or None when not a TTY."""
    if not sys.stdout.isatty():
        return None
    return shutil.get_terminal_size().columns
