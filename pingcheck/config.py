"""
Probe configuration: immutable ProbeConfig plus optional JSON defaults file
in the user app data directory. CLI flags override file values.
"""
import json
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

# Defaults
DEFAULT_COUNT = 30
DEFAULT_INTERVAL_MS = 100
DEFAULT_TIMEOUT_MS = 1000
DEFAULT_TTL = 64
DEFAULT_MAX_LOSS = 5.0
DEFAULT_MAX_LATENCY_MS = 800
TRANSPORTS = ("icmp", "subprocess")
DEFAULT_TRANSPORT = "icmp"


def get_config_dir() -> Path:
    """User app data directory for config and logs."""
    if sys.platform == "win32":
        base = os.environ.get("APPDATA", os.path.expanduser("~"))
        return Path(base) / "pingcheck"
    return Path(os.path.expanduser("~")) / ".pingcheck"


def get_config_path() -> Path:
    return get_config_dir() / "config.json"


def get_default_config() -> dict[str, Any]:
    return {
        "count": DEFAULT_COUNT,
        "interval": DEFAULT_INTERVAL_MS,
        "timeout": DEFAULT_TIMEOUT_MS,
        "ttl": DEFAULT_TTL,
        "max_loss": DEFAULT_MAX_LOSS,
        "max_latency": DEFAULT_MAX_LATENCY_MS,
        "transport": DEFAULT_TRANSPORT,
        "log_path": "",
    }


def load_config(path: Optional[Path] = None) -> dict[str, Any]:
    path = Path(path) if path else get_config_path()
    if not path.exists():
        return get_default_config()
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError):
        return get_default_config()
    if not isinstance(data, dict):
        return get_default_config()
    # Merge with defaults so every key exists; unknown keys are dropped
    config = get_default_config()
    for k in config:
        if k in data:
            config[k] = data[k]
    return config


@dataclass(frozen=True)
class ProbeConfig:
    """Everything one run needs. Durations are milliseconds; count 0 means endless."""

    target: str
    count: int = DEFAULT_COUNT
    interval_ms: int = DEFAULT_INTERVAL_MS
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    ttl: int = DEFAULT_TTL
    max_loss: float = DEFAULT_MAX_LOSS
    max_latency_ms: int = DEFAULT_MAX_LATENCY_MS
    server_name: Optional[str] = None
    quiet: bool = False

    def __post_init__(self) -> None:
        if not self.target or not self.target.strip():
            raise ValueError("target must not be empty")
        if self.count < 0:
            raise ValueError(f"count must be >= 0, got {self.count}")
        if self.interval_ms < 0:
            raise ValueError(f"interval must be >= 0, got {self.interval_ms}")
        if self.timeout_ms < 0:
            raise ValueError(f"timeout must be >= 0, got {self.timeout_ms}")
        if not 1 <= self.ttl <= 255:
            raise ValueError(f"ttl must be within 1..255, got {self.ttl}")
        if not 0.0 <= self.max_loss <= 100.0:
            raise ValueError(f"max loss must be within 0..100, got {self.max_loss}")
        if self.max_latency_ms < 0:
            raise ValueError(f"max latency must be >= 0, got {self.max_latency_ms}")

    @property
    def endless(self) -> bool:
        return self.count == 0

    @property
    def display_name(self) -> str:
        return self.server_name or self.target
