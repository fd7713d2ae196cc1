from pathlib import Path
from typing import Literal, Optional

from dotenv import dotenv_values
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

import os

# Load .env for local/dev environments only where values are missing from the environment
BASE_DIR = Path(__file__).resolve().parent.parent.parent
env_file = BASE_DIR / ".env"

if env_file.exists():
    file_env = dotenv_values(env_file)
    missing_keys = {k: v for k, v in file_env.items() if k not in os.environ and v is not None}
    for k, v in missing_keys.items():
        os.environ[k] = v


class Settings(BaseSettings):
    """Scatter engine settings pulled from SCATTER_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SCATTER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: Literal["json", "console"] = Field(
        default="console", description="Logging format (console or json)"
    )

    # Scatter Defaults
    default_seed: Optional[int] = Field(
        default=None, description="Base seed used when a call supplies none"
    )
    poisson_tries: int = Field(
        default=30, ge=1, description="Candidates per active poisson sample"
    )
    grid_jitter: float = Field(
        default=0.2, ge=0, le=1, description="Grid jitter as a fraction of spacing"
    )


# Instantiate singleton settings object
settings = Settings()
