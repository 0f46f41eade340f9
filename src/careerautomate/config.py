from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "CareerAutomate"
    app_env: str = "development"
    app_host: str = "127.0.0.1"
    app_port: int = 3000
    log_level: str = "INFO"
    secret_key: str = "change-me"

    database_url: str = "sqlite:///./data/careerautomate.db"
    data_dir: Path = Path("./data")

    auth_service_url: str = "http://127.0.0.1:8000"
    onboarding_api_url: str = "http://127.0.0.1:8001/v1/onboarding"
    resume_service_url: str = ""
    github_sync_service_url: str = ""
    supabase_url: str = ""
    supabase_anon_key: str = ""
    http_timeout_sec: int = 30

    session_cookie_name: str = "ca_session"
    session_cookie_secure: bool = False
    session_timeout_min: int = 15
    session_warning_min: int = 2
    activity_throttle_sec: float = 1.0

    system_controls_poll_sec: float = 30.0
    system_controls_enabled: bool = True

    max_identity_upload_bytes: int = 5 * 1024 * 1024
    max_certificate_upload_bytes: int = 5 * 1024 * 1024
    max_video_upload_bytes: int = 50 * 1024 * 1024
    video_max_duration_sec: int = 120

    support_email: str = "support@careerautomate.in"
    web_ui_enabled: bool = True
    cors_origins: str = "http://127.0.0.1:3000"

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, value: str) -> str:
        allowed = {"development", "staging", "production", "test"}
        if value not in allowed:
            raise ValueError(f"app_env must be one of {sorted(allowed)}")
        return value

    @field_validator("auth_service_url", "resume_service_url", "github_sync_service_url", "supabase_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.strip().rstrip("/")

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def resume_generation_enabled(self) -> bool:
        return bool(self.resume_service_url)

    @property
    def github_sync_enabled(self) -> bool:
        return bool(self.github_sync_service_url)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
