"""Signaling server configuration via environment variables."""

import json
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode

from signaling.session.liveness import LIVENESS_SWEEP_INTERVAL


class SignalingServerSettings(BaseSettings):
    model_config = {"env_prefix": "SIGNALING_"}

    host: str = Field(default="0.0.0.0", min_length=1)  # noqa: S104
    port: int = Field(default=8010, ge=1, le=65535)
    log_dir: str = Field(default="backend/logs/signaling", min_length=1)
    # NoDecode: the env value reaches the validator raw, as CSV or a JSON array
    cors_origins: Annotated[list[str], NoDecode] = ["http://localhost:8080"]
    # process-wide; there is no per-session liveness setting
    liveness_interval: float = Field(default=LIVENESS_SWEEP_INTERVAL, ge=1)

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: str | list[str]) -> list[str]:
        if isinstance(v, str):
            stripped = v.strip()
            if stripped.startswith("["):
                try:
                    v = json.loads(stripped)
                except json.JSONDecodeError as e:
                    raise ValueError(f"Invalid JSON array: {e}") from e
            else:
                v = [origin.strip() for origin in stripped.split(",") if origin.strip()]
        if not isinstance(v, list) or not all(isinstance(origin, str) for origin in v):
            raise ValueError("cors_origins must be a list of origins")
        if not v:
            raise ValueError("cors_origins must not be empty")
        return v
