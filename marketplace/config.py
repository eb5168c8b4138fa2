from typing import List, Optional
from urllib.parse import quote_plus

from pydantic_settings import BaseSettings

from marketplace.constants.order_status import ItemTransitionPolicy


class Settings(BaseSettings):
    ENV: str = "local"
    LOG_LEVEL: str = "INFO"

    postgres_user: str = "marketplace"
    postgres_password: str = "marketplace"
    postgres_db: str = "marketplace"
    postgres_host: str = "localhost"
    postgres_port: str = "5432"

    # full URL wins over the postgres_* parts (sqlite for local runs and tests)
    SQLALCHEMY_DATABASE_URI: Optional[str] = None

    secret_key: str = "change-me"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7

    OTP_EXPIRY_MINUTES: int = 10

    RAZORPAY_KEY_ID: Optional[str] = None
    RAZORPAY_KEY_SECRET: Optional[str] = None

    MSG91_API_KEY: Optional[str] = None
    MSG91_SENDER_ID: str = "F2RMKT"
    MSG91_OTP_TEMPLATE_ID: Optional[str] = None
    MSG91_ORDER_TEMPLATE_ID: Optional[str] = None
    MSG91_SHIPPING_TEMPLATE_ID: Optional[str] = None
    MSG91_DELIVERY_TEMPLATE_ID: Optional[str] = None
    SMS_TIMEOUT_SECONDS: float = 10.0

    FREE_SHIPPING_THRESHOLD: float = 499
    FLAT_SHIPPING_CHARGE: float = 49
    ESTIMATED_DELIVERY_DAYS: int = 7

    ITEM_TRANSITION_POLICY: ItemTransitionPolicy = ItemTransitionPolicy.sequential
    TICKET_REQUIRES_DELIVERY: bool = False

    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    @property
    def database_url(self):
        if self.SQLALCHEMY_DATABASE_URI:
            return self.SQLALCHEMY_DATABASE_URI

        encoded_password = quote_plus(self.postgres_password)
        return (
            f"postgresql+psycopg2://{self.postgres_user}:"
            f"{encoded_password}@{self.postgres_host}:"
            f"{self.postgres_port}/{self.postgres_db}"
        )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "allow"


settings = Settings()
