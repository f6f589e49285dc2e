"""Configuration settings for the application."""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings."""

    app_name: str = "TrueBalance API"
    debug: bool = False
    environment: str = "development"
    database_path: str = "truebalance.db"

    # Bank aggregation provider ("teller" or "mock")
    provider: str = "teller"
    teller_application_id: str = ""
    teller_certificate_path: str = ""
    teller_private_key_path: str = ""
    teller_environment: str = "sandbox"
    teller_api_base: str = "https://api.teller.io"
    teller_connect_url: str = "https://connect.teller.io"
    provider_timeout_seconds: float = 30.0

    # Sessions and credential custody
    session_secret: str = ""
    session_ttl_days: int = 7
    bcrypt_rounds: int = 12
    teller_token_key: str = ""

    cors_origins: List[str] = ["http://localhost:5173"]

    # Rate limits, per client address
    rate_limit_enabled: bool = True
    api_rate_limit: str = "100 per 15 minutes"
    login_rate_limit: str = "5 per 15 minutes"  # failed attempts only
    register_rate_limit: str = "3 per hour"

    class Config:
        env_file = ".env"
        case_sensitive = False

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


settings = Settings()
