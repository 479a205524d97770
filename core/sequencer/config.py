"""Shared sequencer configuration utilities.

Reads ~/.sequencer/configuration.json, with environment variables taking
precedence, so the CLI and embedding applications resolve settings the
same way.

Example configuration.json::

    {
        "logging": {"level": "DEBUG", "format": "json"},
        "sequence": {"max_steps": 500, "confirm_decisions": false}
    }
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

# ---------------------------------------------------------------------------
# Low-level config file access
# ---------------------------------------------------------------------------

SEQUENCER_CONFIG_FILE = Path.home() / ".sequencer" / "configuration.json"

_TRUTHY = {"1", "true", "yes", "on"}


def get_sequencer_config() -> dict[str, Any]:
    """Load configuration from ~/.sequencer/configuration.json ({} if absent or invalid)."""
    if not SEQUENCER_CONFIG_FILE.exists():
        return {}
    try:
        with open(SEQUENCER_CONFIG_FILE, encoding="utf-8-sig") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError):
        return {}
    return data if isinstance(data, dict) else {}


# ---------------------------------------------------------------------------
# Derived helpers
# ---------------------------------------------------------------------------


def get_log_level() -> str:
    """Return the log level, SEQUENCER_LOG_LEVEL first, then the config file."""
    env = os.environ.get("SEQUENCER_LOG_LEVEL")
    if env:
        return env.upper()
    return str(get_sequencer_config().get("logging", {}).get("level", "INFO")).upper()


def get_log_format() -> str:
    """Return "json", "human" or "auto"."""
    env = os.environ.get("SEQUENCER_LOG_FORMAT")
    if env:
        return env.lower()
    return str(get_sequencer_config().get("logging", {}).get("format", "auto")).lower()


def get_max_steps() -> int | None:
    """Return the step limit for sequences, None when unlimited."""
    env = os.environ.get("SEQUENCER_MAX_STEPS")
    value = env if env else get_sequencer_config().get("sequence", {}).get("max_steps")
    if value in (None, ""):
        return None
    try:
        steps = int(value)
    except (TypeError, ValueError):
        return None
    return steps if steps > 0 else None


def get_confirm_decisions() -> bool:
    """Return whether sequences should suspend on every decision."""
    env = os.environ.get("SEQUENCER_CONFIRM_DECISIONS")
    if env is not None:
        return env.strip().lower() in _TRUTHY
    return bool(get_sequencer_config().get("sequence", {}).get("confirm_decisions", False))


# ---------------------------------------------------------------------------
# RuntimeConfig
# ---------------------------------------------------------------------------


@dataclass
class RuntimeConfig:
    """Sequencer runtime configuration loaded from file and environment."""

    log_level: str = field(default_factory=get_log_level)
    log_format: str = field(default_factory=get_log_format)
    max_steps: int | None = field(default_factory=get_max_steps)
    confirm_decisions: bool = field(default_factory=get_confirm_decisions)

    def sequence_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for Sequence()/start() derived from this config."""
        return {
            "max_steps": self.max_steps,
            "decision_gate": True if self.confirm_decisions else None,
        }
