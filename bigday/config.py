from __future__ import annotations
import logging
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="BIGDAY_", env_file=".env", extra="ignore")

    # REST API
    api_base: str = "http://localhost:8080/api"
    api_key: Optional[str] = None
    api_author: Optional[str] = None
    request_timeout: float = 30.0

    # QSettings scope (stands in for browser local storage)
    settings_org: str = "BigDay"
    settings_app: str = "Console"

    # Floor plan
    snap_size: float = 40.0
    layout_sync: bool = False
    layout_push_delay_ms: int = 800

    # UI
    toast_ms: int = 2500
    public_base_url: str = "http://localhost:5173"

    log_level: str = "INFO"


@lru_cache()
def get_settings() -> Settings:
    return Settings()


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    if any(getattr(h, "_bigday", False) for h in root.handlers):
        root.setLevel(level.upper())
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._bigday = True
    root.addHandler(handler)
    root.setLevel(level.upper())
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
