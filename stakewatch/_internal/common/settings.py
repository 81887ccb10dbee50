import os

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from stakewatch._internal.common.constants import PRIMARY_SUBNET_ID
from stakewatch._internal.common.types import SubnetId

ENV_FILE = os.environ.get("STAKEWATCH_ENV_FILE", ".env")


class Settings(BaseSettings):
    # platform chain api
    platform_api_url: str = "https://api.avax.network"
    primary_subnet_id: SubnetId = PRIMARY_SUBNET_ID
    request_timeout_seconds: float = 10.0
    fetch_retry_attempts: int = 3

    # refresh loop; 0 disables it
    refresh_interval_seconds: int = 60

    # metrics
    metrics_token: str = ""

    # logging
    log_level: str = "INFO"

    # debug
    debug: bool = False

    model_config = SettingsConfigDict(
        env_file=ENV_FILE, env_file_encoding="utf-8", env_prefix="STAKEWATCH_", extra="ignore"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}
        v = v.upper()
        if v not in allowed:
            raise ValueError(f"log_level must be one of {sorted(allowed)}")
        return v


settings = Settings()
