"""Runtime settings, read from the environment (and a .env file if present)."""

from __future__ import annotations
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


@dataclass
class Settings:
    """Settings shared by the console, the tools and the agents."""
    save_dir: Path = Path("saves")
    log_level: str = "INFO"
    action_threshold: int = 60
    event_sample_size: int = 10
    openrouter_api_key: Optional[str] = None
    agent_model: str = "moonshotai/kimi-k2-0905"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            save_dir=Path(os.getenv("STRATEGY_SAVE_DIR", "saves")),
            log_level=os.getenv("STRATEGY_LOG_LEVEL", "INFO").upper(),
            action_threshold=_int_env("STRATEGY_ACTION_THRESHOLD", 60),
            event_sample_size=_int_env("STRATEGY_EVENT_SAMPLE", 10),
            openrouter_api_key=os.getenv("OPENROUTER_API_KEY"),
            agent_model=os.getenv("AGENT_MODEL", "moonshotai/kimi-k2-0905"),
        )


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Process-wide settings, loaded once."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings
