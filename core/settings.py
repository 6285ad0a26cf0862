from typing import Literal

from dotenv import load_dotenv
from pydantic import ConfigDict
from pydantic_settings import BaseSettings

# Load .env file automatically
load_dotenv()


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Stripe credentials. Missing values degrade features instead of failing startup.
    STRIPE_SECRET_KEY: str = ""
    STRIPE_WEBHOOK_SECRET: str = ""
    STRIPE_API_VERSION: str = "2023-10-16"

    # Webhooks
    WEBHOOK_TOLERANCE_SECONDS: int = 300
    WEBHOOK_DEDUPLICATE_EVENTS: bool = False
    WEBHOOK_DEDUPLICATE_MAX_EVENTS: int = 10_000

    # Payment method ledger
    LEDGER_BACKEND: Literal["memory", "sql"] = "memory"
    DATABASE_URL: str = "sqlite:///./payment_methods.db"

    # App settings
    APP_NAME: str = "Card Setup Relay"
    ENVIRONMENT: Literal["development", "test", "production"] = "development"
    FRONTEND_URL: str = "http://localhost:5173"
    PORT: int = 3002

    # Observability (Optional)
    OTEL_SERVICE_NAME: str = "card-setup-relay"
    METRICS_ENABLED: bool = True

    model_config = ConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    @property
    def stripe_configured(self) -> bool:
        return bool(self.STRIPE_SECRET_KEY)

    @property
    def webhook_configured(self) -> bool:
        return bool(self.STRIPE_WEBHOOK_SECRET)
