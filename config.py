"""
Environment configuration for the GA4 MCP server.

Values are read from the process environment after loading an optional .env file.
"""

import json
import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

UNKNOWN_SERVICE_ACCOUNT = "your service account email"


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "false").strip().lower() in ("1", "true", "yes")


@dataclass
class Settings:
    credentials_json: str = ""
    credentials_file: str = ""
    default_property_id: str = ""
    use_default_property: bool = False
    debug: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables (and .env if present)"""
        load_dotenv()
        return cls(
            credentials_json=os.environ.get("GOOGLE_CREDENTIALS", ""),
            credentials_file=os.environ.get("GOOGLE_APPLICATION_CREDENTIALS", ""),
            default_property_id=os.environ.get("GA_PROPERTY_ID", "").strip(),
            use_default_property=_env_flag("GA_USE_DEFAULT_PROPERTY"),
            debug=_env_flag("DEBUG_MODE"),
        )

    def service_account_info(self) -> Optional[dict]:
        """Service account JSON as a dict, or None when only the SDK default credentials are available"""
        if self.credentials_json:
            return json.loads(self.credentials_json)
        if self.credentials_file and os.path.exists(self.credentials_file):
            with open(self.credentials_file, "r") as f:
                return json.load(f)
        return None

    @property
    def service_account_email(self) -> str:
        try:
            info = self.service_account_info()
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read service account credentials: {e}")
            return UNKNOWN_SERVICE_ACCOUNT
        if info and info.get("client_email"):
            return info["client_email"]
        return UNKNOWN_SERVICE_ACCOUNT


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Process-wide settings, loaded on first use"""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings
