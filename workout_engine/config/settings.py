from pathlib import Path

from loguru import logger
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_blueprints_dir() -> str:
    """Get the directory holding the packaged blueprint YAML files."""
    return str(Path(__file__).parent.parent / "data" / "blueprints")


def get_exercise_catalog_path() -> str:
    """Get the path of the packaged sample exercise catalog."""
    return str(Path(__file__).parent.parent / "data" / "exercises.yaml")


class Settings(BaseSettings):
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_file: str | None = Field(
        default=None,
        validation_alias="LOG_FILE",
        description="Optional JSON-lines file for structured generation events",
    )
    blueprints_dir: str = Field(
        default_factory=get_blueprints_dir,
        validation_alias="BLUEPRINTS_DIR",
        description="Directory with blueprint YAML files",
    )
    exercise_catalog_path: str = Field(
        default_factory=get_exercise_catalog_path,
        validation_alias="EXERCISE_CATALOG_PATH",
        description="YAML file backing the in-memory exercise catalog",
    )
    catalog_timeout_seconds: float = Field(
        default=5.0,
        validation_alias="CATALOG_TIMEOUT_SECONDS",
        description="Upper bound for a single exercise catalog query",
    )
    level_tolerance: int = Field(
        default=3,
        validation_alias="LEVEL_TOLERANCE",
        description="Allowed distance between resolved level and exercise level before a warning is attached",
    )
    part_a_max_sweat_level: int = Field(
        default=1,
        validation_alias="PART_A_MAX_SWEAT_LEVEL",
        description="Highest slot sweat level still classified into Part A",
    )
    part_a_name: str = Field(default="Office Session", validation_alias="PART_A_NAME")
    part_b_name: str = Field(default="Home Session", validation_alias="PART_B_NAME")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="WORKOUT_ENGINE_",
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate that log level is one of the standard logging levels."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_value = value.upper()
        if upper_value not in valid_levels:
            logger.warning(f"Invalid LOG_LEVEL '{value}'. Valid levels are: {', '.join(sorted(valid_levels))}. Defaulting to INFO.")
            return "INFO"
        return upper_value

    @field_validator("catalog_timeout_seconds")
    @classmethod
    def validate_catalog_timeout(cls, value: float) -> float:
        """Validate that the catalog timeout is positive."""
        if value <= 0:
            logger.warning(f"CATALOG_TIMEOUT_SECONDS must be positive, got {value}. Defaulting to 5.0.")
            return 5.0
        return value

    @field_validator("level_tolerance", "part_a_max_sweat_level")
    @classmethod
    def validate_non_negative(cls, value: int) -> int:
        """Validate that integer thresholds are not negative."""
        if value < 0:
            raise ValueError(f"Threshold must be >= 0, got {value}")
        return value


settings = Settings()
