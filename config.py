"""
Runtime settings for RentWise.

Values come from the process environment (populated from .env by
load_dotenv() in app.py). Settings are re-read per request so that a
missing API key turns into a fallback response instead of a startup crash.

Environment (.env):
  ANALYSIS_PROVIDER=openai            # or gemini
  OPENAI_API_KEY=...
  OPENAI_MODEL=gpt-4o-mini
  OPENAI_MODEL_FALLBACK=
  GEMINI_API_KEY=...
  GEMINI_MODEL=models/gemini-1.5-flash
  GEMINI_MODEL_FALLBACK=
  MODEL_TIMEOUT=30
  MODEL_TEMPERATURE=0.2
  GEOCODER_USER_AGENT=rentwise_location_app
  LOG_LEVEL=INFO
"""

import logging
import math
import os
from dataclasses import dataclass
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"
PROVIDERS = ("openai", "gemini")


@dataclass(frozen=True)
class Settings:
    provider: str = "openai"
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    openai_model_fallback: str = ""
    openai_api_url: str = OPENAI_CHAT_URL
    gemini_api_key: Optional[str] = None
    gemini_model: str = "models/gemini-1.5-flash"
    gemini_model_fallback: str = ""
    timeout: float = 30.0
    temperature: float = 0.2
    geocoder_user_agent: str = "rentwise_location_app"

    @property
    def api_key(self) -> Optional[str]:
        """Credential of the active provider."""
        if self.provider == "gemini":
            return self.gemini_api_key
        return self.openai_api_key

    @property
    def key_name(self) -> str:
        return "GEMINI_API_KEY" if self.provider == "gemini" else "OPENAI_API_KEY"

    @property
    def models(self) -> Tuple[str, ...]:
        """Primary model, then the fallback model when set and different."""
        if self.provider == "gemini":
            primary, fallback = self.gemini_model, self.gemini_model_fallback
        else:
            primary, fallback = self.openai_model, self.openai_model_fallback
        if fallback and fallback != primary:
            return (primary, fallback)
        return (primary,)


def _env_float(name: str, default: float, positive: bool = False) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        value = None
    if value is None or not math.isfinite(value) or (positive and value <= 0):
        logger.warning("Ignoring invalid %s=%r, using %s", name, raw, default)
        return default
    return value


def load_settings() -> Settings:
    provider = (os.getenv("ANALYSIS_PROVIDER") or "openai").strip().lower()
    if provider not in PROVIDERS:
        logger.warning("Unknown ANALYSIS_PROVIDER=%r, using openai", provider)
        provider = "openai"

    return Settings(
        provider=provider,
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
        openai_model=os.getenv("OPENAI_MODEL") or "gpt-4o-mini",
        openai_model_fallback=os.getenv("OPENAI_MODEL_FALLBACK", "").strip(),
        openai_api_url=os.getenv("OPENAI_API_URL") or OPENAI_CHAT_URL,
        gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
        gemini_model=os.getenv("GEMINI_MODEL") or "models/gemini-1.5-flash",
        gemini_model_fallback=os.getenv("GEMINI_MODEL_FALLBACK", "").strip(),
        timeout=_env_float("MODEL_TIMEOUT", 30.0, positive=True),
        temperature=_env_float("MODEL_TEMPERATURE", 0.2),
        geocoder_user_agent=os.getenv("GEOCODER_USER_AGENT") or "rentwise_location_app",
    )
