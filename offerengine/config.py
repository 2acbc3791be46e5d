from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_name: str = "OfferEngine"
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"
    log_format: str = "console"

    # user segmentation service
    segment_service_url: str = Field(
        default="http://localhost:1080",
        description="Base URL of the user segment service",
    )
    segment_timeout_seconds: float = Field(default=2.0, gt=0)
