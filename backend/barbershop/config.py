# backend/barbershop/config.py

from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[2]  # repo root


class Settings(BaseSettings):
    database_url: str = "sqlite:///./barbershop.db"
    redis_url: str = "redis://localhost:6379/0"
    operator_token: str = ""
    log_level: str = "INFO"

    shop_name: str = "New Friends Saloon"
    # IANA zone for reading timezone-aware inputs; empty = the server's zone
    shop_timezone: str = ""

    # Scheduling constants (see services/slots/config.py)
    slot_step_minutes: int = 30
    buffer_minutes: int = 10
    default_duration_minutes: int = 30
    promotion_hold_minutes: int = 5
    no_show_grace_minutes: int = 15
    unattended_policy: str = "expire"  # expire / manual

    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        extra="ignore",
    )

    @property
    def resolved_database_url(self) -> str:
        url = self.database_url
        if url.startswith("sqlite:///./"):
            # Relative sqlite path → absolute, anchored at the repo root
            relative_path = url.replace("sqlite:///./", "")
            absolute_path = BASE_DIR / relative_path
            return f"sqlite:///{absolute_path}"
        return url


settings = Settings()
