# studio_planner/config.py

"""
Runtime settings, read from the environment:

    STUDIO_API_URL          remote store endpoint (empty -> local only)
    STUDIO_DATA_DIR         directory for the local JSON store
    STUDIO_ADMIN_KEY        shared admin password for protected actions
    STUDIO_LOG_LEVEL        DEBUG / INFO / WARNING ...
    STUDIO_REQUEST_TIMEOUT  seconds per HTTP call
"""

from __future__ import annotations

import hmac
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_KEY = "TANPHAT"
DEFAULT_DATA_DIR = Path.home() / ".studio_planner"
DEFAULT_TIMEOUT = 15.0
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class AuthorizationError(Exception):
    """Wrong admin password for a protected action."""


@dataclass(frozen=True)
class Settings:
    api_url: str = ""
    data_dir: Path = DEFAULT_DATA_DIR
    admin_key: str = DEFAULT_ADMIN_KEY
    log_level: str = "INFO"
    request_timeout: float = DEFAULT_TIMEOUT

    @property
    def remote_enabled(self) -> bool:
        return bool(self.api_url)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ

        timeout_raw = env.get("STUDIO_REQUEST_TIMEOUT", "")
        try:
            timeout = float(timeout_raw) if timeout_raw else DEFAULT_TIMEOUT
        except ValueError:
            logger.warning("Invalid STUDIO_REQUEST_TIMEOUT=%r, using %s", timeout_raw, DEFAULT_TIMEOUT)
            timeout = DEFAULT_TIMEOUT

        data_dir = env.get("STUDIO_DATA_DIR", "")
        return cls(
            api_url=env.get("STUDIO_API_URL", "").strip(),
            data_dir=Path(data_dir).expanduser() if data_dir else DEFAULT_DATA_DIR,
            admin_key=env.get("STUDIO_ADMIN_KEY", "") or DEFAULT_ADMIN_KEY,
            log_level=(env.get("STUDIO_LOG_LEVEL", "") or "INFO").upper(),
            request_timeout=timeout,
        )


def configure_logging(settings: Settings) -> None:
    level = getattr(logging, settings.log_level, logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("studio_planner").setLevel(level)


def check_admin_password(admin_key: str, password: str) -> bool:
    return hmac.compare_digest((password or "").encode(), (admin_key or "").encode())


def require_admin(admin_key: str, password: str) -> None:
    if not check_admin_password(admin_key, password):
        logger.warning("Rejected admin password")
        raise AuthorizationError("Incorrect admin password.")
