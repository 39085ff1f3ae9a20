# hms_console/config.py - Console configuration management
from dotenv import load_dotenv

load_dotenv()
import os
from typing import Optional
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator


class Settings(BaseSettings):
    """Console settings with validation and environment variable support (Pydantic V2 Syntax)"""

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="allow",
        case_sensitive=False,
        populate_by_name=True,
    )

    # Application
    app_name: str = "HealthCare Admin Console"
    app_version: str = "1.0.0"
    environment: str = Field(default="development", alias="HMS_ENVIRONMENT")
    debug: bool = Field(default=False, alias="HMS_DEBUG")

    # Remote records API
    api_base_url: str = Field(default="http://localhost:5000/api", alias="HMS_API_BASE_URL")
    doctors_path: str = Field(default="/doctors", alias="HMS_DOCTORS_PATH")
    # None means the client never gives up on a request
    request_timeout: Optional[float] = Field(default=None, alias="HMS_REQUEST_TIMEOUT")

    # Persisted session (the console's local key/value store)
    session_file: str = Field(default=".hms_session.json", alias="HMS_SESSION_FILE")

    # Logging
    log_level: str = Field(default="INFO", alias="HMS_LOG_LEVEL")
    json_logs: bool = Field(default=False, alias="HMS_JSON_LOGS")

    # --- Pydantic V2 Validators ---
    @field_validator("api_base_url")
    @classmethod
    def validate_api_base_url(cls, v):
        if not v:
            raise ValueError("HMS_API_BASE_URL is required")
        if not v.startswith(("http://", "https://")):
            raise ValueError("HMS_API_BASE_URL must be an http:// or https:// URL")
        return v.rstrip("/")

    @field_validator("doctors_path")
    @classmethod
    def validate_doctors_path(cls, v):
        if v not in ("/doctors", "/users/doctors"):
            raise ValueError("HMS_DOCTORS_PATH must be /doctors or /users/doctors")
        return v

    @field_validator("request_timeout", mode="before")
    @classmethod
    def parse_request_timeout(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"


# Environment-specific configurations; HMS_* variables still override these defaults
class DevelopmentConfig(Settings):
    """Development environment configuration"""
    debug: bool = Field(default=True, alias="HMS_DEBUG")
    environment: str = Field(default="development", alias="HMS_ENVIRONMENT")
    log_level: str = Field(default="DEBUG", alias="HMS_LOG_LEVEL")

class ProductionConfig(Settings):
    """Production environment configuration"""
    debug: bool = Field(default=False, alias="HMS_DEBUG")
    environment: str = Field(default="production", alias="HMS_ENVIRONMENT")
    json_logs: bool = Field(default=True, alias="HMS_JSON_LOGS")

class TestingConfig(Settings):
    """Testing environment configuration"""
    debug: bool = Field(default=True, alias="HMS_DEBUG")
    environment: str = Field(default="testing", alias="HMS_ENVIRONMENT")
    api_base_url: str = Field(default="http://records.test/api", alias="HMS_API_BASE_URL")
    session_file: str = Field(default="./test_session.json", alias="HMS_SESSION_FILE")

def get_config_by_env(env: str) -> Settings:
    """Get configuration by environment name"""
    configs = {
        "development": DevelopmentConfig,
        "production": ProductionConfig,
        "testing": TestingConfig
    }

    config_class = configs.get(env.lower(), Settings)
    return config_class()


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance for the environment named by HMS_ENVIRONMENT"""
    return get_config_by_env(os.getenv("HMS_ENVIRONMENT", "development"))
