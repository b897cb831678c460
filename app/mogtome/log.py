"""Process-wide logging setup for the sync job and the health server.

MOGTOME_LOG_LEVEL wins over the "logging.level" key of the config file.
Unknown level names fall back to INFO rather than failing startup.
"""
import logging
import os
from typing import Optional

from .config import config_section, load_config

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Chatty at INFO; only their warnings are interesting.
NOISY_LOGGERS = ("urllib3",)


def level_from_name(name) -> int:
    level = logging.getLevelName(str(name).strip().upper())
    return level if isinstance(level, int) else logging.INFO


def configured_level(cfg: Optional[dict] = None) -> int:
    env_level = os.getenv("MOGTOME_LOG_LEVEL")
    if env_level:
        return level_from_name(env_level)
    if cfg is None:
        cfg = load_config()
    return level_from_name(config_section(cfg, "logging").get("level") or "INFO")


def configure_logging(level: Optional[int] = None, cfg: Optional[dict] = None) -> int:
    """Install the root handler once and return the level in effect."""
    if level is None:
        level = configured_level(cfg)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
    return level
