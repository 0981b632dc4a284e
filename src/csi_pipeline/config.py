"""Runtime settings loaded from the environment (and .env)."""
import os
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from .exceptions import ConfigurationError

# Fraction of the per-attempt budget given to the request itself.
CALL_TIMEOUT_SHARE = 0.9


class Settings(BaseModel):
    analyzer_backend: Literal["heuristic", "llm"] = "heuristic"
    stage_timeout: float = Field(default=30.0, gt=0)
    model: str = "claude-haiku-4-5"
    max_retries: int = Field(default=3, ge=1)
    retry_backoff: float = Field(default=1.0, ge=0)
    max_concurrent: int = Field(default=10, ge=1)
    data_dir: Path = Path("data")
    support_team: str = "Acme Support"
    log_level: str = "INFO"
    anthropic_api_key: str | None = None

    @model_validator(mode="after")
    def check_retry_budget(self) -> "Settings":
        if self.backoff_total >= self.stage_timeout:
            raise ValueError(
                f"retry backoff ({self.backoff_total:g}s over {self.max_retries} attempts) "
                f"does not fit in stage_timeout ({self.stage_timeout:g}s)"
            )
        return self

    @property
    def backoff_total(self) -> float:
        """Seconds slept between attempts when every attempt fails."""
        return self.retry_backoff * (2 ** (self.max_retries - 1) - 1)

    @property
    def call_timeout(self) -> float:
        """Per-attempt API timeout so all retries finish inside one stage timeout."""
        return (self.stage_timeout - self.backoff_total) / self.max_retries * CALL_TIMEOUT_SHARE

    @property
    def cache_dir(self) -> Path:
        return self.data_dir / "analyses"

    @property
    def reports_dir(self) -> Path:
        return self.data_dir / "reports"


# env var -> Settings field
ENV_VARS = {
    "CSI_ANALYZER_BACKEND": "analyzer_backend",
    "CSI_STAGE_TIMEOUT": "stage_timeout",
    "CSI_MODEL": "model",
    "CSI_MAX_RETRIES": "max_retries",
    "CSI_RETRY_BACKOFF": "retry_backoff",
    "CSI_MAX_CONCURRENT": "max_concurrent",
    "CSI_DATA_DIR": "data_dir",
    "CSI_SUPPORT_TEAM": "support_team",
    "CSI_LOG_LEVEL": "log_level",
    "ANTHROPIC_API_KEY": "anthropic_api_key",
}


def load_settings(env: dict[str, str] | None = None) -> Settings:
    """Build Settings from `env`, or from os.environ after loading .env."""
    if env is None:
        load_dotenv()
        env = dict(os.environ)

    values = {field: env[var] for var, field in ENV_VARS.items() if env.get(var)}
    try:
        return Settings(**values)
    except PydanticValidationError as e:
        raise ConfigurationError(
            f"Invalid settings: {e.error_count()} error(s)",
            context={
                "fields": ",".join(
                    str(err["loc"][0]) if err["loc"] else "settings" for err in e.errors()
                )
            },
        ) from e
