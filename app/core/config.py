from decimal import Decimal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "Tavola Orders"
    version: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    APP_DOMAIN: str = "example.com"
    APP_DATABASE_DSN: str = "sqlite:////tmp/tavola.db"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # Pricing
    TAX_RATE: Decimal = Decimal("0.10")  # flat VAT, single jurisdiction
    SERVICE_FEE: Decimal = Decimal("2.00")  # takeaway and delivery only
    DELIVERY_FEE: Decimal = Decimal("3.50")

    # Orders
    ORDER_NUMBER_PREFIX: str = "ORD"


settings = Settings()
