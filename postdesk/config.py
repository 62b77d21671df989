"""Application configuration loaded from the environment"""

import os
from typing import Optional

from dotenv import load_dotenv
from loguru import logger
from pydantic import BaseModel, Field

# Load environment variables
load_dotenv()


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"{name}={raw!r} is not a number, using {default}")
        return default


class AppConfig(BaseModel):
    """Runtime settings shared by stores, clients and the controller"""
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.5-flash"
    state_file: str = "postdesk_state.json"
    stage_delay_scale: float = Field(default=1.0, ge=0)
    mail_delay_scale: float = Field(default=1.0, ge=0)
    official_id: str = "admin"
    official_password: str = "1245"
    portal_region: str = "Delhi Circle"
    reports_dir: str = "reports"

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Build settings from environment variables (and .env)"""
        return cls(
            gemini_api_key=os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY"),
            gemini_model=os.getenv("GEMINI_MODEL", "gemini-2.5-flash"),
            state_file=os.getenv("POSTDESK_STATE_FILE", "postdesk_state.json"),
            stage_delay_scale=max(0.0, _float_env("POSTDESK_STAGE_DELAY_SCALE", 1.0)),
            mail_delay_scale=max(0.0, _float_env("POSTDESK_MAIL_DELAY_SCALE", 1.0)),
            official_id=os.getenv("POSTDESK_OFFICIAL_ID", "admin"),
            official_password=os.getenv("POSTDESK_OFFICIAL_PASSWORD", "1245"),
            portal_region=os.getenv("POSTDESK_PORTAL_REGION", "Delhi Circle"),
            reports_dir=os.getenv("POSTDESK_REPORTS_DIR", "reports"),
        )
