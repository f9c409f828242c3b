"""Application configuration: settings schema and mdterm.yaml loader"""

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError


CONFIG_FILE = "mdterm.yaml"


class Settings(BaseModel):
    theme:             str   = Field(default="solarized-dark", description="Pygments style used to colour code blocks")
    local_only:        bool  = Field(default=False, description="Never fetch remote images")
    colour:            Optional[bool] = Field(default=None, description="Force colour on or off; None detects")
    columns:           Optional[int]  = Field(default=None, ge=1, description="Output width for rules; None detects")
    parser_config:     str   = Field(default="commonmark", description="MarkdownIt parser preset name")
    strip_frontmatter: bool  = Field(default=True, description="Hide a leading YAML frontmatter block")
    fetch_timeout:     float = Field(default=10.0, gt=0, description="Seconds to wait for a remote image or converter")


def load_config(overrides: dict[str, Any] = None) -> Settings:
    """Load Settings from mdterm.yaml, then MDTERM_<FIELD> env vars, then non-None CLI overrides."""
    data: dict[str, Any] = {}
    if Path(CONFIG_FILE).exists():
        try:
            data = yaml.safe_load(Path(CONFIG_FILE).read_text()) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid {CONFIG_FILE}: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Invalid {CONFIG_FILE}: expected a mapping, got {type(data).__name__}")

    for name in Settings.model_fields:
        if val := os.getenv(f"MDTERM_{name.upper()}"):
            data[name] = val

    if overrides:
        data.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return Settings(**data)
    except ValidationError as e:
        raise ValueError(f"Invalid configuration: {e}") from e
