import os
from dataclasses import dataclass
from typing import Optional

from google import genai


@dataclass(frozen=True)
class AnalysisSettings:
    model: str = "gemini-2.0-flash"
    planner_timeout: float = 20.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "AnalysisSettings":
        return cls(
            model=os.getenv("INSIGHT_MODEL", cls.model),
            planner_timeout=float(os.getenv("PLANNER_TIMEOUT_SECONDS", cls.planner_timeout)),
            log_level=os.getenv("INSIGHT_LOG_LEVEL", cls.log_level),
        )


def get_api_key(explicit: Optional[str] = None, allow_missing: bool = False) -> str:
    key = explicit or os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY")
    if not key and not allow_missing:
        raise RuntimeError("Google API Key not provided. Set GOOGLE_API_KEY or pass it in.")
    return key or ""


def get_client(api_key: Optional[str] = None) -> genai.Client:
    """Create a Google GenAI client using provided or env key."""
    key = get_api_key(api_key)
    return genai.Client(api_key=key)
