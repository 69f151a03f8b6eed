# backend/searchplus/config_loader.py
from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from collections.abc import Mapping
from typing import Any, Optional

from zoneinfo import ZoneInfo

from .search_expression import MODE_OR, VALID_MODES

log = logging.getLogger(__name__)

CONFIG_RELATIVE_PATH = Path("config") / "appconfig.json"

MATCH_CONTAINS = "contains"
MATCH_STARTS = "starts"
MATCH_EXACT = "exact"
VALID_MATCH_MODES = (MATCH_CONTAINS, MATCH_STARTS, MATCH_EXACT)

DEFAULT_HIDDEN_TABLE_PREFIXES = ("_grist", "GristHidden")
DEFAULT_SKIP_COLUMNS = ("id", "manualSort")
DEFAULT_ID_COLUMN = "id"
DEFAULT_TYPE_SAMPLE_SIZE = 20
# column names that suggest a Unix-seconds number is really a date
DEFAULT_DATE_COLUMN_HINTS = r"date|created|updated|modified|embauche|naissance|debut|fin|start|end"


def base_dir() -> Path:
    """
    Directory that relative config, data and log paths hang off:
    SEARCHPLUS_HOME when set, otherwise the current working directory.
    """
    override = os.getenv("SEARCHPLUS_HOME")
    if override:
        return Path(override).expanduser()
    return Path.cwd()


def env_files() -> list[Path]:
    """.env candidates in load order: backend/.env first, then the base .env."""
    root = base_dir()
    return [root / "backend" / ".env", root / ".env"]


def _config_path() -> Path:
    override = os.getenv("SEARCHPLUS_CONFIG")
    if override:
        return Path(override).expanduser()
    return base_dir() / CONFIG_RELATIVE_PATH


def _read_json_file(path: Path) -> dict:
    """Read JSON from disk, returning an empty mapping on failure."""
    if not path.exists():
        log.debug("No config file at %s; using defaults", path)
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except Exception:
        log.warning("Could not read %s; falling back to defaults", path, exc_info=True)
        return {}
    if not isinstance(data, dict):
        log.warning("%s does not hold a JSON object; falling back to defaults", path)
        return {}
    return data


def load_app_config() -> dict:
    """Return the raw JSON configuration for the application."""
    return _read_json_file(_config_path())


def _get(cfg: Optional[Mapping[str, Any]], key: str) -> Any:
    if cfg is None:
        cfg = load_app_config()
    if isinstance(cfg, Mapping):
        return cfg.get(key)
    return None


def _coerce_string_tuple(raw_value: Any, fallback: tuple[str, ...]) -> tuple[str, ...]:
    if isinstance(raw_value, str):
        raw_value = re.split(r"[;,\s]+", raw_value)
    if not isinstance(raw_value, list):
        return fallback
    cleaned = []
    for item in raw_value:
        if isinstance(item, str) and item.strip() and item.strip() not in cleaned:
            cleaned.append(item.strip())
    return tuple(cleaned)


def get_default_logic_mode(cfg: Optional[Mapping[str, Any]] = None) -> str:
    raw = _get(cfg, "default_logic_mode")
    if raw is None:
        return MODE_OR
    mode = str(raw).strip().lower()
    if mode not in VALID_MODES:
        log.warning("Unknown default_logic_mode %r; falling back to %r", raw, MODE_OR)
        return MODE_OR
    return mode


def get_default_match_mode(cfg: Optional[Mapping[str, Any]] = None) -> str:
    raw = _get(cfg, "default_match_mode")
    if raw is None:
        return MATCH_CONTAINS
    mode = str(raw).strip().lower()
    if mode not in VALID_MATCH_MODES:
        log.warning("Unknown default_match_mode %r; falling back to %r", raw, MATCH_CONTAINS)
        return MATCH_CONTAINS
    return mode


def get_hidden_table_prefixes(cfg: Optional[Mapping[str, Any]] = None) -> tuple[str, ...]:
    return _coerce_string_tuple(_get(cfg, "hidden_table_prefixes"), DEFAULT_HIDDEN_TABLE_PREFIXES)


def get_skip_columns(cfg: Optional[Mapping[str, Any]] = None) -> tuple[str, ...]:
    return _coerce_string_tuple(_get(cfg, "skip_columns"), DEFAULT_SKIP_COLUMNS)


def get_id_column(cfg: Optional[Mapping[str, Any]] = None) -> str:
    raw = _get(cfg, "id_column")
    if isinstance(raw, str) and raw.strip():
        return raw.strip()
    return DEFAULT_ID_COLUMN


def get_type_sample_size(cfg: Optional[Mapping[str, Any]] = None) -> int:
    """How many rows column type inference may look at."""
    raw = _get(cfg, "type_sample_size")
    if raw is None:
        return DEFAULT_TYPE_SAMPLE_SIZE
    try:
        numeric = int(raw)
    except (TypeError, ValueError):
        log.warning("type_sample_size %r is not a number; using %d", raw, DEFAULT_TYPE_SAMPLE_SIZE)
        return DEFAULT_TYPE_SAMPLE_SIZE
    if numeric <= 0:
        return DEFAULT_TYPE_SAMPLE_SIZE
    return numeric


def get_date_column_hints(cfg: Optional[Mapping[str, Any]] = None) -> re.Pattern:
    raw = _get(cfg, "date_column_hints")
    if isinstance(raw, str) and raw.strip():
        try:
            return re.compile(raw, re.IGNORECASE)
        except re.error:
            log.warning("date_column_hints %r is not a valid pattern; using defaults", raw, exc_info=True)
    return re.compile(DEFAULT_DATE_COLUMN_HINTS, re.IGNORECASE)


def get_timezone(cfg: Optional[Mapping[str, Any]] = None) -> Optional[ZoneInfo]:
    """Return the configured timezone, or None to use the machine's local time."""
    raw = _get(cfg, "timezone")
    if not (isinstance(raw, str) and raw.strip()):
        return None
    name = raw.strip()
    try:
        return ZoneInfo(name)
    except Exception:
        log.warning("Unknown timezone %r; falling back to local time", name, exc_info=True)
        return None


def initialize_app_config(app: Any, cfg: Optional[Mapping[str, Any]] = None) -> None:
    """Populate a Flask app instance with values derived from appconfig.json."""
    if cfg is None:
        cfg = load_app_config()
    if isinstance(cfg, Mapping):
        app.config.update(cfg)
    app.config["DEFAULT_LOGIC_MODE"] = get_default_logic_mode(cfg)
    app.config["DEFAULT_MATCH_MODE"] = get_default_match_mode(cfg)
    app.config["HIDDEN_TABLE_PREFIXES"] = get_hidden_table_prefixes(cfg)
    app.config["SKIP_COLUMNS"] = get_skip_columns(cfg)
    app.config["ID_COLUMN"] = get_id_column(cfg)
    app.config["TYPE_SAMPLE_SIZE"] = get_type_sample_size(cfg)
    app.config["DATE_COLUMN_HINTS"] = get_date_column_hints(cfg)
    app.config["TZ"] = get_timezone(cfg)
