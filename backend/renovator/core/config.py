# backend/renovator/core/config.py
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    app_name: str = "Renovator"
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # Database
    database_url: str = "postgresql+asyncpg://localhost:5432/renovator"

    # Keycloak / OpenID Connect provider
    keycloak_url: str = "http://localhost:8080"
    keycloak_realm: str = "renovator"
    keycloak_client_id: str | None = "renovator-app"
    keycloak_client_secret: str | None = None
    oauth_http_timeout_seconds: float = 10.0

    # Where the provider sends the browser back when the client doesn't say
    default_redirect_uri: str = "http://localhost:4000/api/auth/callback"

    # Session housekeeping
    session_sweep_interval_minutes: int = 60

    # Frontend
    frontend_url: str = "http://localhost:3000"
    cors_origins: str = "http://localhost:3000,http://localhost:5173"

    # API client
    api_base_url: str = "http://localhost:4000"

    model_config = {"env_file": ".env", "extra": "ignore"}

    @property
    def realm_url(self) -> str:
        return f"{self.keycloak_url.rstrip('/')}/realms/{self.keycloak_realm}"

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
