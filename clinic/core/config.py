from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env from the project root so it loads regardless of cwd
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(str(_ENV_FILE), ".env", "../.env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str
    database_ssl: bool = True

    # JWT verification (tokens are issued by the auth service)
    secret_key: str
    algorithm: str = "HS256"
    token_issuer: str = "hospital-api"
    access_token_expire_minutes: int = 15

    # CORS
    cors_origins: str = "http://localhost:3000"

    # Slot generation
    default_regeneration_weeks: int = 6
    max_regeneration_weeks: int = 26
    max_weekly_templates: int = 70
    # Background regeneration of every doctor's slots; 0 disables the loop
    slot_regeneration_interval_hours: int = 24

    # Slot search pagination
    search_default_limit: int = 20
    search_max_limit: int = 100

    # Appointment reminders (one scan per window)
    reminders_enabled: bool = True
    reminder_lead_hours: int = 24
    reminder_window_minutes: int = 5

    # Env
    env: str = "development"

    # Email (SMTP). Leave smtp_host empty to disable sending.
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    from_email: str = ""
    from_name: str = "Clinic"
    site_name: str = "Clinic"

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def email_enabled(self) -> bool:
        return bool(self.smtp_host and self.smtp_user and self.smtp_password and self.from_email)


settings = Settings()
