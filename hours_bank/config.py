"""
Application configuration.

All configuration is loaded from environment variables.
Never hardcode secrets or connection strings in code.
"""

import os
from functools import lru_cache

from dotenv import load_dotenv

# Load .env file into environment variables
load_dotenv()

DEFICIT_CARRY_TARGETS = ("available_balance", "baseline")


class Settings:
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Hours Bank Engine"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Server
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))

    # Database
    DATABASE_URL: str = os.getenv(
        "DATABASE_URL",
        "postgresql://localhost:5432/hours_bank"
    )

    # Environment
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    # Billing
    CURRENCY: str = os.getenv("CURRENCY", "BRL")

    # Adjustments must carry a justification at least this long
    MIN_JUSTIFICATION_LENGTH: int = int(
        os.getenv("MIN_JUSTIFICATION_LENGTH", "10")
    )

    # How long a second recalculation for the same company waits for
    # the running one before being rejected. 0 rejects immediately.
    RECALC_LOCK_TIMEOUT_SECONDS: float = float(
        os.getenv("RECALC_LOCK_TIMEOUT_SECONDS", "0")
    )

    # Where a deficit carried out of a non-closing month lands in the
    # next month: "available_balance" or "baseline".
    DEFICIT_CARRY_TARGET: str = os.getenv(
        "DEFICIT_CARRY_TARGET", "available_balance"
    )

    def __init__(self):
        if self.DEFICIT_CARRY_TARGET not in DEFICIT_CARRY_TARGETS:
            raise ValueError(
                f"DEFICIT_CARRY_TARGET must be one of "
                f"{', '.join(DEFICIT_CARRY_TARGETS)}, "
                f"got {self.DEFICIT_CARRY_TARGET!r}"
            )


@lru_cache()
def get_settings() -> Settings:
    """
    Return cached settings instance.

    Using lru_cache means the Settings object is created once
    and reused for all subsequent calls.
    """
    return Settings()
