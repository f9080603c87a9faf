"""Application settings and configuration."""

from typing import Literal

from pydantic import Field, model_validator  # type: ignore
from pydantic_settings import BaseSettings, SettingsConfigDict  # type: ignore

from mathtutor.learning_engine import config as engine_config


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    ``DATABASE_URL`` and ``JWT_SECRET`` have no defaults: the process refuses to
    start without them.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    ENV: Literal["dev", "staging", "prod", "test"] = Field(default="dev")
    PROJECT_NAME: str = Field(default="K-6 Math Tutor API")

    # API
    API_PREFIX: str = Field(default="/api")

    # Database (required)
    DATABASE_URL: str = Field(..., min_length=1)

    # CORS - Accept string or list, will be normalized to list
    CORS_ORIGINS: str | list[str] = Field(default="http://localhost:3000")

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    SLOW_SQL_WARN_MS: int = Field(default=100)

    # Security - JWT (secret required)
    JWT_SECRET: str = Field(..., min_length=32)
    JWT_ALG: str = Field(default="HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=60, ge=1)

    # Seeding
    SEED_DEMO_DATA: bool = Field(default=False)

    # Mastery heuristic
    MASTERY_DEFAULT: float = Field(default=engine_config.MASTERY_DEFAULT.value)
    MASTERY_CORRECT_RATE: float = Field(default=engine_config.MASTERY_CORRECT_RATE.value, gt=0, lt=1)
    MASTERY_INCORRECT_RATE: float = Field(
        default=engine_config.MASTERY_INCORRECT_RATE.value, gt=0, lt=1
    )
    MASTERY_FLOOR: float = Field(default=engine_config.MASTERY_FLOOR.value, ge=0, le=1)
    MASTERY_CEILING: float = Field(default=engine_config.MASTERY_CEILING.value, ge=0, le=1)
    MASTERY_THRESHOLD: float = Field(default=engine_config.MASTERY_THRESHOLD.value, gt=0, le=1)

    @model_validator(mode="before")
    @classmethod
    def parse_cors_origins(cls, data):
        """Parse CORS_ORIGINS from comma-separated string or list."""
        if isinstance(data, dict) and isinstance(data.get("CORS_ORIGINS"), str):
            data["CORS_ORIGINS"] = [
                origin.strip() for origin in data["CORS_ORIGINS"].split(",") if origin.strip()
            ]
        return data

    @model_validator(mode="after")
    def check_consistency(self):
        """Fail fast on settings that cannot work together."""
        # Values read from the environment bypass the "before" validator
        if isinstance(self.CORS_ORIGINS, str):
            object.__setattr__(
                self,
                "CORS_ORIGINS",
                [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()],
            )
        if self.MASTERY_FLOOR >= self.MASTERY_CEILING:
            raise ValueError("MASTERY_FLOOR must be lower than MASTERY_CEILING")
        if not self.MASTERY_FLOOR <= self.MASTERY_DEFAULT <= self.MASTERY_CEILING:
            raise ValueError("MASTERY_DEFAULT must lie within [MASTERY_FLOOR, MASTERY_CEILING]")
        if self.ENV == "prod" and self.DATABASE_URL.startswith("sqlite"):
            raise ValueError("DATABASE_URL must point to Postgres in production")
        return self


# Global settings instance
settings = Settings()
