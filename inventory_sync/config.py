from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    APP_NAME: str = "Inventory Sync API"
    DATABASE_URL: str = "sqlite:///./inventory.db"
    API_PREFIX: str = "/api"

    # Expose underlying error text in error responses
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Admin panel origins (comma-separated, "*" for any)
    CORS_ORIGINS: str = "*"

    # Source tags written to inventory logs when the caller gives none
    API_USER_SOURCE: str = "api"
    BULK_USER_SOURCE: str = "bulk_api"
    CREATION_USER_SOURCE: str = "creation"

    # Pagination
    DEFAULT_PER_PAGE: int = 10
    PRODUCTS_PER_PAGE: int = 50
    MAX_PER_PAGE: int = 100
    DEFAULT_LOG_LIMIT: int = 20

    LOW_STOCK_THRESHOLD: int = 10
    EXPORT_MAX_ROWS: int = 1000

    # Applied per connection so a blocked stock mutation fails instead of hanging
    STATEMENT_TIMEOUT_MS: int = 5000

    model_config = {"env_file": ".env"}

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
