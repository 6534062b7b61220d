"""Application configuration from environment variables."""

from pydantic_settings import BaseSettings

from centrobook.services.operating_hours import ConfigDefaults


class Settings(BaseSettings):
    # App
    app_name: str = "CentroBook"
    debug: bool = True
    secret_key: str = "dev-secret-change-in-production"
    api_prefix: str = "/api/v1"

    # Database
    database_url: str = "postgresql+asyncpg://centrobook:centrobook@db:5432/centrobook"
    database_echo: bool = False

    # Auth (token issuing lives elsewhere; we only decode)
    access_token_expire_minutes: int = 60
    jwt_algorithm: str = "HS256"

    # Operating hours defaults, used when a center has no stored value
    default_open: str = "08:00"
    default_close: str = "22:00"
    default_timezone: str = "Europe/Madrid"
    default_slot_minutes: int = 30
    default_day_start: str = "06:00"
    default_night_start: str = "18:00"

    # Reservations
    max_override_percent: int = 20
    min_duration_minutes: int = 30
    max_duration_minutes: int = 480

    # Operator client
    client_base_url: str = "http://localhost:8000/api/v1"
    client_timeout_seconds: float = 10.0

    model_config = {"env_prefix": "CENTRO_", "env_file": ".env", "extra": "ignore"}

    def hours_defaults(self) -> ConfigDefaults:
        return ConfigDefaults(
            open=self.default_open,
            close=self.default_close,
            timezone=self.default_timezone,
            slot_minutes=self.default_slot_minutes,
            day_start=self.default_day_start,
            night_start=self.default_night_start,
        )


settings = Settings()
