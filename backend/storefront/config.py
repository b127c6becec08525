import tempfile
from decimal import Decimal
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./dev.db"
    APP_HOST: str = "127.0.0.1"
    APP_PORT: int = 8000
    FRONTEND_ORIGINS: List[str] = ["http://localhost:3000"]
    LOG_LEVEL: str = "INFO"
    RESET_DB: bool = False

    # pricing
    FREE_SHIPPING_THRESHOLD: Decimal = Decimal("50.00")
    SHIPPING_PRICE: Decimal = Decimal("10.00")
    TAX_RATE: Decimal = Decimal("0.10")

    # cart
    MAX_QUANTITY_PER_ITEM: int = 99
    CART_SESSION_DAYS: int = 30
    CART_COOKIE_NAME: str = "sessionCartId"

    # checkout
    CHECKOUT_SESSION_HOURS: int = 24
    CHECKOUT_COOKIE_NAME: str = "checkout-session"
    PAYMENT_METHODS: List[str] = ["cashOnDelivery", "stripe", "paypal"]
    ENABLED_PAYMENT_METHODS: List[str] = ["cashOnDelivery"]

    # identity of the signed-in user, set by the upstream session provider
    AUTH_USER_HEADER: str = "X-User-Id"

    ORDERS_PER_PAGE: int = 10
    LOCKS_DIR: str = tempfile.gettempdir()

    SCHEDULER_ENABLED: bool = True
    PURGE_INTERVAL_SECONDS: int = 3600

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


settings = Settings()
