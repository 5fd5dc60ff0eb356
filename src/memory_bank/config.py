"""Configuration loading from environment variables and memory-bank.toml."""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass, field

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

_DEFAULT_STORAGE_ROOT = Path.home() / ".advanced-memory-bank"
_CONFIG_FILENAME = "memory-bank.toml"

_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass
class CacheConfig:
    """Look-aside cache in front of the memory store."""

    capacity: int = 1000
    ttl: float = 24 * 60 * 60


@dataclass
class DetectionConfig:
    """Which project-detection probes may run."""

    editor_probes: bool = True
    process_inspection: bool = True
    marker_depth: int = 5


@dataclass
class MemoryBankConfig:
    """Top-level configuration."""

    storage_root: Path = _DEFAULT_STORAGE_ROOT
    cache: CacheConfig = field(default_factory=CacheConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    log_level: str = "INFO"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return bool(default)
    return value.strip().lower() not in _FALSE_VALUES


def load_config(config_path: Path | None = None) -> MemoryBankConfig:
    """Load configuration from environment variables and optional memory-bank.toml.

    Priority: environment variables > memory-bank.toml > defaults.
    """
    file_data: dict = {}
    if config_path and config_path.exists():
        file_data = tomllib.loads(config_path.read_text())
    else:
        # Search current dir and the default storage root
        for candidate in [Path.cwd() / _CONFIG_FILENAME, _DEFAULT_STORAGE_ROOT / _CONFIG_FILENAME]:
            if candidate.exists():
                file_data = tomllib.loads(candidate.read_text())
                break

    cache_data = file_data.get("cache", {})
    detection_data = file_data.get("detection", {})

    storage_root = os.getenv("MEMORY_BANK_ROOT") or file_data.get("storage_root")

    config = MemoryBankConfig(
        storage_root=(
            Path(storage_root).expanduser().resolve() if storage_root else _DEFAULT_STORAGE_ROOT
        ),
        cache=CacheConfig(
            capacity=int(os.getenv("MEMORY_BANK_CACHE_SIZE", cache_data.get("capacity", 1000))),
            ttl=float(os.getenv("MEMORY_BANK_CACHE_TTL", cache_data.get("ttl", 24 * 60 * 60))),
        ),
        detection=DetectionConfig(
            editor_probes=_env_bool(
                "MEMORY_BANK_EDITOR_DETECTION", detection_data.get("editor_probes", True)
            ),
            process_inspection=_env_bool(
                "MEMORY_BANK_PROCESS_DETECTION", detection_data.get("process_inspection", True)
            ),
            marker_depth=int(detection_data.get("marker_depth", 5)),
        ),
        log_level=os.getenv("MEMORY_BANK_LOG_LEVEL", file_data.get("log_level", "INFO")),
    )
    return config


def setup_logging(level: str) -> None:
    """Send diagnostics to stderr; stdout belongs to the host protocol."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )
