"""Root test configuration: isolated environment and shared capability profiles"""

import pytest

from mdterm.config import Settings
from mdterm.core.terminal import CapabilityProfile, TerminalKind, profile_for


_TERMINAL_ENV = ["TERM_PROGRAM", "VTE_VERSION", "COLORTERM"]


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    """Keep MDTERM_* settings and terminal identification from leaking into tests."""
    for name in Settings.model_fields:
        monkeypatch.delenv(f"MDTERM_{name.upper()}", raising=False)
    for name in _TERMINAL_ENV:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("TERM", "xterm")


@pytest.fixture(name="dumb_profile")
def dumb_profile_fixture() -> CapabilityProfile:
    return profile_for(TerminalKind.dumb)


@pytest.fixture(name="ansi_profile")
def ansi_profile_fixture() -> CapabilityProfile:
    return profile_for(TerminalKind.ansi, {"TERM": "xterm"})


@pytest.fixture(name="vte_profile")
def vte_profile_fixture() -> CapabilityProfile:
    return profile_for(TerminalKind.vte)


@pytest.fixture(name="iterm2_profile")
def iterm2_profile_fixture() -> CapabilityProfile:
    return profile_for(TerminalKind.iterm2)
