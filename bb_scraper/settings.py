# settings.py
"""
Runtime configuration for the Brutalball scraper.

Module-level constants are read once from the environment. `load_settings()`
layers an optional YAML file (bb_scrape.yml, or the path in BB_CONFIG) on top
and returns a `Settings` object that the CLI hands to the pipeline.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)


def _env_str(name: str, default: str) -> str:
    val = os.environ.get(name)
    if val is None or not val.strip():
        return default
    return val.strip()


def _env_int(name: str, default: int) -> int:
    val = os.environ.get(name)
    if not val:
        return default
    try:
        return int(val)
    except ValueError:
        logger.warning("Ignoring invalid integer for %s=%r", name, val)
        return default


# ===================== NETWORK =====================

HOST = _env_str("BB_HOST", "dozerverse.com")
PREFIX = "/brutalball/"
USER_AGENT = "Mozilla/5.0 (compatible; bb-scraper/0.5)"
REQUEST_TIMEOUT = _env_int("BB_TIMEOUT", 15)

# Page paths relative to PREFIX
TEAM_PAGE = "team.php?i={team_id}"
SEASON_PAGE = "season.php"
TEAMS_PAGE = "index.php"
INJURY_PAGE = "injury.php"
# Pages whose <title> also names the season
SEASON_FALLBACK_PAGES = ("stat_team.php", "stat_team_performance.php")

# ===================== LOCAL FILES =====================

STORE_DIR = _env_str("BB_STORE_DIR", ".store")
OUT_DIR = _env_str("BB_OUT_DIR", "out")
DEFAULT_FILE = "all"
LOG_FILE_NAME = "bb_scrape.log"
CONFIG_FILE = _env_str("BB_CONFIG", "bb_scrape.yml")

# ===================== CONCURRENCY =====================

WORKERS = _env_int("BB_WORKERS", 4)
REQUEST_PAUSE_MS = 75
JITTER_MS = 25

# ===================== SITE =====================

TEAM_COUNT = 32

LOG_LEVEL = _env_str("BB_LOG_LEVEL", "INFO")


@dataclass(frozen=True)
class Settings:
    """Resolved configuration passed down from the CLI."""

    host: str = HOST
    prefix: str = PREFIX
    user_agent: str = USER_AGENT
    request_timeout: int = REQUEST_TIMEOUT
    store_dir: str = STORE_DIR
    out_dir: str = OUT_DIR
    workers: int = WORKERS
    request_pause_ms: int = REQUEST_PAUSE_MS
    jitter_ms: int = JITTER_MS
    log_level: str = LOG_LEVEL

    @property
    def log_file(self) -> str:
        return os.path.join(self.store_dir, LOG_FILE_NAME)

    @property
    def base_url(self) -> str:
        return f"http://{self.host}{self.prefix}"


def load_yaml_config(path: Path | str | None = None) -> Dict[str, Any]:
    """
    Load the optional YAML config. Returns empty dict if the file is missing.
    """
    cfg_path = Path(path or CONFIG_FILE)
    if not cfg_path.exists():
        return {}
    with open(cfg_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        logger.warning("Ignoring config %s: top level is not a mapping", cfg_path)
        return {}
    return data


def load_settings(path: Path | str | None = None, **overrides: Any) -> Settings:
    """
    Build Settings from defaults, then the YAML file, then keyword overrides.
    Unknown YAML keys are logged and skipped; None overrides are ignored.
    """
    known = {f.name for f in fields(Settings)}
    values: Dict[str, Any] = {}

    for key, val in load_yaml_config(path).items():
        if key not in known:
            logger.warning("Unknown config key %r ignored", key)
            continue
        values[key] = val

    for key, val in overrides.items():
        if val is not None and key in known:
            values[key] = val

    return replace(Settings(), **values)
