# backend/vetperto/config.py

from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[2]  # repository root


class Settings(BaseSettings):
    database_url: str = "sqlite:///./data/vetperto.db"
    redis_url: str = "redis://localhost:6379/0"

    session_ttl_seconds: int = 7 * 24 * 3600
    internal_token: Optional[str] = None

    # Outbound e-mail (Resend compatible HTTP API). Disabled without a key.
    email_api_url: str = "https://api.resend.com/emails"
    email_api_key: Optional[str] = None
    email_from: str = "VetPerto <noreply@vetperto.com.br>"

    public_base_url: str = "http://localhost:5173"
    default_lang: str = "pt"

    run_background_tasks: bool = True
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        extra="ignore",
    )

    @property
    def resolved_database_url(self) -> str:
        url = self.database_url
        if url.startswith("sqlite:///./"):
            # relative sqlite path → absolute, anchored at repository root
            relative_path = url.replace("sqlite:///./", "")
            absolute_path = BASE_DIR / relative_path
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            return f"sqlite:///{absolute_path}"
        return url


settings = Settings()
