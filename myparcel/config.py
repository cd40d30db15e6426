"""Konfiguration och loggning för MyParcel-klienten.

Konfigurationen är en YAML-fil där ${ENV_VAR} ersätts med miljövariabler,
så att API-nyckeln kan hållas utanför filen:

    myparcel:
      api_key: ${MYPARCEL_API_KEY}
      storefront: nl
"""

import os
import re
import logging
import logging.handlers
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

# Standardfil: config/config.yaml i projektroten
DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config" / "config.yaml"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

_ENV_PATTERN = re.compile(r'\$\{(\w+)\}')


def resolve_env(raw: str) -> str:
    """Ersätter ${ENV_VAR} med miljövariabler. Okända lämnas orörda."""
    def replace_env(match):
        var_name = match.group(1)
        return os.environ.get(var_name, match.group(0))

    return _ENV_PATTERN.sub(replace_env, raw)


def load_config(path: Optional[Path] = None) -> dict:
    """Laddar YAML-konfiguration med miljövariabelersättning.

    Sökväg: argumentet, annars $MYPARCEL_CONFIG, annars DEFAULT_CONFIG_PATH.
    """
    if path is None:
        path = Path(os.environ.get("MYPARCEL_CONFIG", DEFAULT_CONFIG_PATH))

    with open(path, "r", encoding="utf-8") as f:
        raw = f.read()

    config = yaml.safe_load(resolve_env(raw)) or {}
    if not isinstance(config, dict):
        raise ValueError(f"Konfigurationen i {path} måste vara en mappning")
    return config


def setup_logging(config: dict):
    """Konfigurerar loggning enligt 'logging'-blocket.

    Filloggning (roterande) bara om log_dir är satt.
    """
    log_config = config.get("logging", {}) or {}

    level = getattr(logging, str(log_config.get("level", "INFO")).upper())
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT)

    root = logging.getLogger()
    root.setLevel(level)

    log_dir = log_config.get("log_dir")
    if log_dir:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        max_bytes = log_config.get("max_file_size_mb", 10) * 1024 * 1024
        backup_count = log_config.get("backup_count", 30)

        file_handler = logging.handlers.RotatingFileHandler(
            log_dir / "myparcel.log",
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    if log_config.get("console_output", True):
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        root.addHandler(console)
