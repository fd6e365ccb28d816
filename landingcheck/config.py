from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    DATABASE_URL: str = "sqlite:///landingcheck.db"
    LOG_LEVEL: str = "INFO"
    # Local reference data (vessels, conversion factors, exporter behaviour, aliases)
    DATA_DIR: str = "data"
    RISK_WEIGHTING_CONFIG: str = "config/risk_weighting.yaml"
    # Load reference data and risking settings when the API starts
    REFRESH_ON_STARTUP: bool = True
    # Sentinel vessel appended to the vessel list so unknown PLNs still resolve
    VESSEL_NOT_FOUND_ENABLED: bool = True
    VESSEL_NOT_FOUND_NAME: str = "Vessel not found"
    VESSEL_NOT_FOUND_PLN: str = "N/A"
    # Seed default EOD rules for every configured vessel size during refresh
    EOD_RULES_MIGRATION: bool = False
    # User recorded on audits for rules written by the system itself
    EOD_SYSTEM_USER: str = "landingcheck"
    # Connection pool (ignored for sqlite)
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    # API authentication (if unset, all requests pass — local dev)
    LANDINGCHECK_API_KEY: str | None = None
    # CORS origins (comma-separated string for env var support)
    CORS_ORIGINS: str = "http://localhost:3000"


settings = Settings()
