"""Configuration management for streamchat.

Config discovery (first match wins):
  1. ``--config`` flag
  2. ``./streamchat.yaml``
  3. ``~/.config/streamchat/config.yaml``
  4. Built-in defaults

``GEMINI_API_KEY`` fills in the API key when the file leaves it empty.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

_logger = logging.getLogger(__name__)

API_KEY_ENV = "GEMINI_API_KEY"
CONFIG_FILENAME = "streamchat.yaml"


class GenerationSpec(BaseModel):
    """Fixed sampling parameters sent with every chat request."""

    temperature: float = 1.0
    top_k: int = 40
    top_p: float = 0.95
    max_output_tokens: int = 8192

    def to_payload(self) -> dict[str, Any]:
        return {
            "temperature": self.temperature,
            "topK": self.top_k,
            "topP": self.top_p,
            "maxOutputTokens": self.max_output_tokens,
        }


class ChatConfig(BaseModel):
    api_key: str = ""
    model: str = "gemini-2.5-flash-lite"
    dictation_model: str = "gemini-2.5-flash-lite"
    system_instruction: str = ""
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    max_attempts: int = 3
    connect_timeout: float = 30
    read_timeout: float = 60  # max silence between stream chunks
    generation: GenerationSpec = Field(default_factory=GenerationSpec)

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key.strip())


_SEARCH_PATHS = [
    Path(CONFIG_FILENAME),
    Path.home() / ".config" / "streamchat" / "config.yaml",
]


def load_config(
    config_path: str | Path | None = None,
) -> tuple[ChatConfig, Path | None]:
    """Load configuration from YAML.

    Returns (config, resolved_path).  *resolved_path* is ``None`` when
    no file was found and built-in defaults are used.
    """
    resolved: Path | None = None
    if config_path is not None:
        resolved = Path(config_path)
        if not resolved.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        for candidate in _SEARCH_PATHS:
            if candidate.exists():
                resolved = candidate
                break

    raw: dict[str, Any] = {}
    if resolved is not None:
        _logger.info("Loading config from %s", resolved)
        with open(resolved) as f:
            raw = yaml.safe_load(f) or {}
    else:
        _logger.info("No config file found, using defaults")

    config = ChatConfig.model_validate(raw)
    if not config.has_credentials and os.environ.get(API_KEY_ENV):
        config = config.model_copy(update={"api_key": os.environ[API_KEY_ENV]})

    return config, resolved.resolve() if resolved else None
