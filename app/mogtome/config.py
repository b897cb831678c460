"""Configuration loading for the MogTome sync job.

The JSON config file is the single source of truth for non-secret settings.
Secrets and deployment paths may be overridden through the environment.
"""

import json
import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

log = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "/data/mogtome.config"
DEFAULT_DATA_ROOT = "/data"
DEFAULT_LODESTONE_HOST = "na.finalfantasyxiv.com"
DEFAULT_MIN_ROSTER_SIZE = 10
DEFAULT_API_KEY_HEADER = "X-Api-Key"
DEFAULT_LOCK_LEASE_MINUTES = 15

# Lowest first.
DEFAULT_RANKS = [
    "Mandragora",
    "Coeurl Hunter",
    "Paissa Trainer",
    "Moogle Knight",
    "Kupo Officer",
    "Moogle Master",
]


def config_path() -> str:
    return os.getenv("MOGTOME_CONFIG", DEFAULT_CONFIG_PATH)


def load_config() -> dict:
    """
    Load the MogTome configuration from disk.

    Missing or unreadable files are logged and yield an empty dict so the
    defaults below apply.
    """
    path = config_path()
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        log.error("Config file not found: %s", path)
        return {}
    except Exception:
        log.exception("Failed to load config")
        return {}
    if not isinstance(data, dict):
        log.error("Config file %s must contain a JSON object", path)
        return {}
    return data


@dataclass
class Settings:
    free_company_id: str
    lodestone_host: str = DEFAULT_LODESTONE_HOST
    min_roster_size: int = DEFAULT_MIN_ROSTER_SIZE
    ranks: List[str] = field(default_factory=lambda: list(DEFAULT_RANKS))
    data_root: Path = Path(DEFAULT_DATA_ROOT)
    webhook_url: Optional[str] = None
    api_key: Optional[str] = None
    api_key_header: str = DEFAULT_API_KEY_HEADER
    replay_dir: Optional[Path] = None
    lock_lease_minutes: float = DEFAULT_LOCK_LEASE_MINUTES


def config_section(cfg: dict, name: str) -> dict:
    """Return a nested config object, treating null or non-object values as empty."""
    section = cfg.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        log.warning("Config section %r must be an object; ignoring it", name)
        return {}
    return section


def _int_setting(raw, default: int, name: str) -> int:
    if raw in (None, ""):
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        log.warning("Invalid %s %r; using %s", name, raw, default)
        return default


def _float_setting(raw, default: float, name: str) -> float:
    if raw in (None, ""):
        return default
    try:
        return float(raw)
    except (TypeError, ValueError):
        log.warning("Invalid %s %r; using %s", name, raw, default)
        return default


def _rank_list(raw) -> List[str]:
    if raw is None:
        return list(DEFAULT_RANKS)
    if not isinstance(raw, list) or not all(isinstance(r, str) for r in raw):
        log.warning("'ranks' must be a list of rank names; using defaults")
        return list(DEFAULT_RANKS)
    return list(raw)


def load_settings(cfg: Optional[dict] = None) -> Settings:
    """Build typed settings from the config dict plus environment overrides."""
    if cfg is None:
        cfg = load_config()

    notification = config_section(cfg, "notification")
    data_root = os.getenv("MOGTOME_DATA_ROOT") or cfg.get("data_root") or DEFAULT_DATA_ROOT
    replay_dir = cfg.get("replay_dir")

    return Settings(
        free_company_id=str(cfg.get("free_company_id") or ""),
        lodestone_host=cfg.get("lodestone_host") or DEFAULT_LODESTONE_HOST,
        min_roster_size=_int_setting(
            os.getenv("MOGTOME_MIN_ROSTER_SIZE") or cfg.get("min_roster_size"),
            DEFAULT_MIN_ROSTER_SIZE,
            "min_roster_size",
        ),
        ranks=_rank_list(cfg.get("ranks")),
        data_root=Path(data_root),
        webhook_url=os.getenv("MOGTOME_WEBHOOK_URL") or notification.get("url"),
        api_key=os.getenv("MOGTOME_API_KEY") or notification.get("api_key"),
        api_key_header=notification.get("api_key_header") or DEFAULT_API_KEY_HEADER,
        replay_dir=Path(replay_dir) if replay_dir else None,
        lock_lease_minutes=_float_setting(
            cfg.get("lock_lease_minutes"),
            DEFAULT_LOCK_LEASE_MINUTES,
            "lock_lease_minutes",
        ),
    )
