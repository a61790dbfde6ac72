from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    DATABASE_URL: str = "postgresql+psycopg2://leesvaardig:leesvaardig@db:5432/leesvaardig"
    LOG_LEVEL: str = "INFO"

    # Progress dashboard
    PROGRESS_CACHE_SECONDS: int = 10
    MOVING_AVERAGE_WINDOW: int = Field(default=5, gt=0)

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
