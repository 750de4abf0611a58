from __future__ import annotations

import json
import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import streamlit as st

CONFIG_FILE_NAME = "settings.json"
ENV_DATA_DIR = "PRINTSHOP_DATA_DIR"
ENV_LOG_LEVEL = "PRINTSHOP_LOG_LEVEL"
SESSION_DATA_DIR = "printshop_data_dir"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

log = logging.getLogger("printshop")


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    db_path: Path
    currency: str = "INR"
    depot_a_label: str = "Deepak"
    depot_b_label: str = "Dimple"
    log_level: str = "INFO"


def _default_data_dir() -> Path:
    return Path.home() / ".printshop_pos"


def _load_persisted_settings(data_dir: Path) -> dict:
    cfg = data_dir / CONFIG_FILE_NAME
    if cfg.exists():
        try:
            return json.loads(cfg.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            log.warning("Ignoring unreadable %s", cfg)
            return {}
    return {}


def persist_data_dir(data_dir_str: str) -> None:
    data_dir = Path(data_dir_str).expanduser().resolve()
    data_dir.mkdir(parents=True, exist_ok=True)

    cfg = data_dir / CONFIG_FILE_NAME
    payload = {"data_dir": str(data_dir)}
    cfg.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    st.session_state[SESSION_DATA_DIR] = str(data_dir)


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach one stdout handler to the ``printshop`` logger (safe to call repeatedly)."""
    if not log.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        log.addHandler(handler)
    log.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    return log


def resolve_settings(data_dir: Optional[Path] = None) -> Settings:
    # Priority order:
    # 1) Explicit argument
    # 2) Session state (set via persist_data_dir)
    # 3) Environment variable
    # 4) Persisted settings in default folder
    # 5) Default folder
    if data_dir is not None:
        data_dir = Path(data_dir).expanduser().resolve()
    elif SESSION_DATA_DIR in st.session_state:
        data_dir = Path(st.session_state[SESSION_DATA_DIR]).expanduser().resolve()
    elif os.getenv(ENV_DATA_DIR):
        data_dir = Path(os.getenv(ENV_DATA_DIR, "")).expanduser().resolve()
    else:
        default_dir = _default_data_dir()
        persisted = _load_persisted_settings(default_dir)
        data_dir = Path(persisted.get("data_dir", default_dir)).expanduser().resolve()

    persisted = _load_persisted_settings(data_dir)
    data_dir.mkdir(parents=True, exist_ok=True)
    return Settings(
        data_dir=data_dir,
        db_path=data_dir / "printshop.db",
        currency=str(persisted.get("currency", "INR")),
        depot_a_label=str(persisted.get("depot_a_label", "Deepak")),
        depot_b_label=str(persisted.get("depot_b_label", "Dimple")),
        log_level=os.getenv(ENV_LOG_LEVEL, str(persisted.get("log_level", "INFO"))),
    )


@st.cache_resource
def get_settings() -> Settings:
    settings = resolve_settings()
    configure_logging(settings.log_level)
    return settings
