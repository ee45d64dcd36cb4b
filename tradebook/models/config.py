from pydantic import BaseModel, field_validator
import pytz
import yaml

from tradebook.constants import DEFAULT_MAX_MATCH_ITERATIONS, DEFAULT_TIMEZONE_NAME


class DatabaseConfig(BaseModel):
    path: str = "data/tradebook.duckdb"


class MatchingConfig(BaseModel):
    max_iterations: int = DEFAULT_MAX_MATCH_ITERATIONS

    @field_validator("max_iterations")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("max_iterations must be at least 1")
        return value


class LoggingConfig(BaseModel):
    level: str = "INFO"
    log_dir: str = "logs"


class AppConfig(BaseModel):
    database: DatabaseConfig = DatabaseConfig()
    matching: MatchingConfig = MatchingConfig()
    logging: LoggingConfig = LoggingConfig()
    timezone: str = DEFAULT_TIMEZONE_NAME

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        if value not in pytz.all_timezones_set:
            raise ValueError(f"Unknown timezone: {value}")
        return value


def load_config(path: str = "config.yaml") -> AppConfig:
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return AppConfig(**data)
    except FileNotFoundError:
        return AppConfig()
