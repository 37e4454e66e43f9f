"""
Printshop Backend Configuration.

Environment-based configuration using Pydantic Settings.
Secrets (Stripe, Printify, CSRF) should be set via environment variables.
"""

from functools import lru_cache
from typing import Any

from pydantic import BaseModel, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CatalogItemConfig(BaseModel):
    """One sellable item kind."""

    name: str
    price: int  # minor units
    sku_code: str


DEFAULT_CATALOG_ITEMS = {
    "sweatshirt": CatalogItemConfig(name="Sweatshirt", price=3000, sku_code="S"),
    "tshirt": CatalogItemConfig(name="T-Shirt", price=3000, sku_code="T"),
    "hoodie": CatalogItemConfig(name="Hoodie", price=3000, sku_code="H"),
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Printshop Checkout"
    app_version: str = "1.0.0"
    debug: bool = False

    # Listeners
    host: str = "localhost"
    port: int = 4242
    webhook_port: int = 4343

    # API
    api_prefix: str = "/api"

    # Database
    database_url: str = "sqlite+aiosqlite:///./sqlite.db"

    # Stripe
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""
    shop_currency: str = "usd"
    webhook_max_body_bytes: int = 65536

    # Printify
    printify_api_token: str = ""
    printify_shop_id: int = 0
    printify_base_url: str = "https://api.printify.com/v1"
    printify_timeout: float = 30.0
    printify_shipping_method: int = 1
    shipping_fallback_cost: int = 850

    # Cart
    cart_max_items: int = 8
    cart_atomic_item_limit: bool = False

    # Session cookie
    session_cookie_name: str = "session"
    session_ttl_days: int = 7
    session_cookie_secure: bool = False

    # CSRF
    csrf_secret_key: str = "CHANGE-ME-CSRF-SECRET"
    csrf_protect: bool = True

    # Catalog
    catalog_items: dict[str, CatalogItemConfig] = DEFAULT_CATALOG_ITEMS
    catalog_sizes: list[str] = ["s", "m", "l", "xl", "2xl", "3xl"]
    catalog_colors: list[str] = ["black", "red", "green"]
    catalog_brand: str = "Printshop"
    sku_prefix: str = "PRINTSHOP"

    # Logging
    log_level: str = "INFO"
    log_file: str = ""

    # CORS
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:4242",
    ]

    @field_validator("database_url", mode="before")
    @classmethod
    def validate_database_url(cls, v: Any) -> Any:
        """Ensure SQLite URLs use the aiosqlite driver."""
        if isinstance(v, str) and v.startswith("sqlite://"):
            return v.replace("sqlite://", "sqlite+aiosqlite://", 1)
        return v

    @field_validator("shop_currency")
    @classmethod
    def lower_currency(cls, v: str) -> str:
        return v.lower()


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
