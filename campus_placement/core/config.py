"""
Configuration module - loads all env vars using pydantic-settings.
This is the SINGLE SOURCE OF TRUTH for all config values.
"""

from functools import lru_cache
from typing import List
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Relational store. database_url wins when set (tests use SQLite files).
    database_url: str = ""
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "placement_user"
    postgres_password: str = "password"
    postgres_db: str = "placement_db"
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_echo: bool = False

    # External resume/job matcher (OpenAI-compatible)
    matcher_api_key: str = ""
    matcher_base_url: str = "https://api.deepseek.com/v1"
    matcher_model: str = "deepseek-chat"
    matcher_timeout_seconds: float = 20.0
    matcher_max_tokens: int = 600

    # JWT Auth
    jwt_secret_key: str = "change-this-secret"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 1440
    bcrypt_rounds: int = 12

    # Placement rules
    branch_vocabulary: List[str] = ["CSE", "IT", "ECE", "EEE", "Mechanical", "Civil", "Other"]
    resume_extensions: List[str] = [".pdf", ".docx", ".txt"]
    upcoming_deadline_days: int = 7

    # App
    log_level: str = "INFO"

    @field_validator("resume_extensions")
    @classmethod
    def normalize_extensions(cls, v: List[str]) -> List[str]:
        return [ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in v]

    @property
    def postgres_url(self) -> str:
        """Construct PostgreSQL connection URL"""
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def sqlalchemy_url(self) -> str:
        return self.database_url or self.postgres_url

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
