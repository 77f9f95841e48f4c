import math
from typing import Any, Literal, get_args

from pydantic import ValidationInfo, field_validator
from pydantic_settings import BaseSettings

MAX_LIST_LIMIT = 100

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    api_token: str = ""
    database_url: str = ""
    provider_delay_ms_min: int = 800
    provider_delay_ms_max: int = 2200
    provider_fail_rate: float = 0.15
    provider_transport: Literal["local", "http"] = "local"
    app_url: str = "http://localhost:8000"
    list_limit: int = 100
    log_level: LogLevel = "INFO"

    @field_validator("api_token", "database_url", "app_url", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("provider_delay_ms_min", "provider_delay_ms_max", mode="before")
    @classmethod
    def _clamp_delay(cls, value: Any, info: ValidationInfo) -> int:
        # Unparseable values fall back to the default instead of failing startup
        number = _to_float(value)
        if number is None:
            return cls.model_fields[info.field_name].default
        return max(0, math.floor(number))

    @field_validator("provider_fail_rate", mode="before")
    @classmethod
    def _clamp_rate(cls, value: Any, info: ValidationInfo) -> float:
        number = _to_float(value)
        if number is None:
            return cls.model_fields[info.field_name].default
        return min(1.0, max(0.0, number))

    @field_validator("list_limit", mode="before")
    @classmethod
    def _clamp_list_limit(cls, value: Any, info: ValidationInfo) -> int:
        number = _to_float(value)
        if number is None:
            return cls.model_fields[info.field_name].default
        return min(MAX_LIST_LIMIT, max(1, math.floor(number)))

    @field_validator("log_level", mode="before")
    @classmethod
    def _known_log_level(cls, value: Any, info: ValidationInfo) -> str:
        level = str(value).strip().upper()
        if level not in get_args(LogLevel):
            return cls.model_fields[info.field_name].default
        return level


def _to_float(value: Any) -> float | None:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None
