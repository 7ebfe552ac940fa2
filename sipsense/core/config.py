from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "sqlite:///./sipsense.db"
    APP_ENV: str = "development"

    # Comma-separated allowed origins, or "*" to allow all.
    # Example: "https://myapp.com,https://api.myapp.com"
    CORS_ORIGINS: str = "*"

    # Logging: LOG_FORMAT=json switches the console renderer off.
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "console"

    # Clock and weather collaborators
    TIMEZONE: str = "UTC"
    DEFAULT_TEMPERATURE: float = 22.0

    # Background training ramp: the progress indicator advances in
    # TRAINING_PROGRESS_STEPS steps of TRAINING_STEP_DELAY seconds each.
    TRAINING_PROGRESS_STEPS: int = 10
    TRAINING_STEP_DELAY: float = 0.1

    # Seed for the initial random weights. None = fresh randomness per process.
    RANDOM_SEED: Optional[int] = None

    # "standard" | "enhanced" | "strict" — initial reminder privacy mode
    PRIVACY_MODE: str = "standard"

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
