from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import requests

from parts_client.db.api import ApiRepo
from parts_client.db.repo import Repo

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "config.json"


@dataclass
class ClientConfig:
    api_url: Optional[str] = None
    api_key: str = ""
    db_path: str = "parts.db"
    timeout: float = 20
    # Use the backend's atomic per-prefix sequence instead of a name scan.
    use_sequence: bool = True


def load_api_config(path: Union[str, Path, None] = None) -> ClientConfig:
    """Load client settings from config.json, then apply environment overrides.

    Recognized keys: api_url, api_key, db_path, timeout, use_sequence.
    Environment: PARTS_CONFIG (file location), PARTS_API_URL, PARTS_API_KEY, PARTS_DB_PATH.
    """
    p = Path(path or os.getenv("PARTS_CONFIG", DEFAULT_CONFIG_NAME))
    raw: dict = {}
    if p.exists():
        try:
            raw = json.loads(p.read_text(encoding="utf-8")) or {}
        except (OSError, ValueError) as e:
            raise ValueError(f"Cannot read client config {p}: {e}") from e

    cfg = ClientConfig(
        api_url=raw.get("api_url") or None,
        api_key=raw.get("api_key") or "",
        db_path=raw.get("db_path") or "parts.db",
        timeout=float(raw.get("timeout") or 20),
        use_sequence=bool(raw.get("use_sequence", True)),
    )
    cfg.api_url = os.getenv("PARTS_API_URL", cfg.api_url or "") or None
    cfg.api_key = os.getenv("PARTS_API_KEY", cfg.api_key)
    cfg.db_path = os.getenv("PARTS_DB_PATH", cfg.db_path)
    return cfg


def save_api_config(cfg: ClientConfig, path: Union[str, Path, None] = None) -> None:
    p = Path(path or os.getenv("PARTS_CONFIG", DEFAULT_CONFIG_NAME))
    p.write_text(
        json.dumps(
            {
                "api_url": cfg.api_url,
                "api_key": cfg.api_key,
                "db_path": cfg.db_path,
                "timeout": cfg.timeout,
                "use_sequence": cfg.use_sequence,
            },
            indent=2,
        ),
        encoding="utf-8",
    )


def open_store(cfg: ClientConfig) -> Union[ApiRepo, Repo]:
    """Backend store when api_url is configured, local SQLite store otherwise.

    The choice is made from configuration only; an unreachable backend is an
    error, not a reason to switch to local data.
    """
    if cfg.api_url:
        session = requests.Session()
        if cfg.api_key:
            session.headers.update({"X-API-Key": cfg.api_key})
        logger.info("Using parts backend at %s", cfg.api_url)
        return ApiRepo(cfg.api_url, api_session=session, timeout=cfg.timeout)
    logger.info("Using local part catalog at %s", cfg.db_path)
    return Repo(cfg.db_path)
