"""
MedCheck Configuration

Central settings loaded from environment variables.
"""

import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """Immutable application settings."""

    # --- Versioning ---
    CORE_VERSION: str = "2.3.0"

    # --- Pattern matching defaults ---
    MIN_CONFIDENCE: float = float(os.getenv("MEDCHECK_MIN_CONFIDENCE", "0.5"))
    CONTEXT_LENGTH: int = int(os.getenv("MEDCHECK_CONTEXT_LENGTH", "50"))
    MAX_MATCHES: int = int(os.getenv("MEDCHECK_MAX_MATCHES", "100"))

    # --- Pipeline ---
    PARALLEL_STAGES: bool = _env_bool("MEDCHECK_PARALLEL_STAGES", "true")
    MAX_TEXT_LENGTH: int = int(os.getenv("MEDCHECK_MAX_TEXT_LENGTH", "100000"))

    # --- Server ---
    HOST: str = os.getenv("MEDCHECK_HOST", "0.0.0.0")
    PORT: int = int(os.getenv("MEDCHECK_PORT", "8000"))

    # --- CORS ---
    CORS_ORIGINS: str = os.getenv("MEDCHECK_CORS_ORIGINS", "*")


settings = Settings()
