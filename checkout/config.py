import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from checkout.money import MIN_AMOUNT

BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"


@dataclass(frozen=True)
class CheckoutConfig:
    """Client-side settings handed to the requester, widget and orchestrator"""

    publishable_key: str = ""
    api_base_url: str = "http://localhost:3001/api"
    return_url: str = "http://localhost:5175/completion"
    currency: str = "usd"
    min_amount: int = MIN_AMOUNT
    http_timeout: Optional[float] = None  # the surrounding UI imposes its own

    @classmethod
    def from_env(cls) -> "CheckoutConfig":
        load_dotenv(dotenv_path=ENV_PATH)
        frontend = os.getenv("FRONTEND_URL", "http://localhost:5175")
        return cls(
            publishable_key=os.getenv("STRIPE_PUBLISHABLE_KEY", ""),
            api_base_url=os.getenv("CHECKOUT_API_URL", cls.api_base_url).rstrip("/"),
            return_url=os.getenv("CHECKOUT_RETURN_URL", f"{frontend}/completion"),
            currency=os.getenv("CHECKOUT_CURRENCY", cls.currency),
        )


@dataclass(frozen=True)
class RelaySettings:
    """Backend relay settings; holds the only long-lived secret"""

    stripe_secret_key: str
    stripe_webhook_secret: Optional[str] = None
    stripe_api_version: str = "2024-11-20.acacia"
    frontend_url: str = "http://localhost:5175"
    host: str = "0.0.0.0"
    port: int = 3001
    env: str = "development"
    log_level: str = "INFO"

    def __repr__(self) -> str:
        return f"RelaySettings(env={self.env!r}, port={self.port}, frontend_url={self.frontend_url!r})"

    @classmethod
    def from_env(cls) -> "RelaySettings":
        load_dotenv(dotenv_path=ENV_PATH)

        secret_key = os.getenv("STRIPE_SECRET_KEY")
        if not secret_key:
            raise RuntimeError("STRIPE_SECRET_KEY is not set. Check your .env file.")

        return cls(
            stripe_secret_key=secret_key,
            stripe_webhook_secret=os.getenv("STRIPE_WEBHOOK_SECRET") or None,
            stripe_api_version=os.getenv("STRIPE_API_VERSION", cls.stripe_api_version),
            frontend_url=os.getenv("FRONTEND_URL", cls.frontend_url),
            host=os.getenv("HOST", cls.host),
            port=int(os.getenv("PORT", cls.port)),
            env=os.getenv("NODE_ENV", os.getenv("ENV", cls.env)),
            log_level=os.getenv("LOG_LEVEL", cls.log_level),
        )
