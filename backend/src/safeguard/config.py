"""Application configuration for the hazard classification engine.

Loads settings from .env file with SAFEGUARD_ prefix.
Validates the risk grade range and the catalog conflict retry limit.
"""

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Safeguard settings.

    All settings are loaded from environment variables with SAFEGUARD_ prefix,
    or from a .env file in the working directory.
    """

    database_url: str = "sqlite:///./data/safeguard.db"
    debug: bool = False

    # NR-1 grades; gate catalog intrinsic risks, submitted risks are kept as-is
    risk_min: int = 1
    risk_max: int = 4

    conflict_retry_limit: int = Field(default=3, ge=1)
    inherit_catalog_risk: bool = False
    default_provenance: str = "establishment-sync"

    model_config = {
        "env_file": ".env",
        "env_prefix": "SAFEGUARD_",
    }

    @model_validator(mode="after")
    def validate_risk_range(self) -> "Settings":
        """Reject an inverted risk range."""
        if self.risk_min > self.risk_max:
            raise ValueError(
                f"risk_min ({self.risk_min}) must not exceed risk_max ({self.risk_max})"
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Create and return the cached Settings instance.

    Raises a clear error message if the environment holds invalid values.
    """
    try:
        return Settings()
    except Exception as e:
        raise RuntimeError(
            f"Failed to load Safeguard settings: {e}\n"
            "Check the SAFEGUARD_* environment variables or the .env file."
        ) from e
