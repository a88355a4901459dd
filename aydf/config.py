import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class GatewayConfig:
    key_id: Optional[str]
    key_secret: Optional[str]
    currency: str = "INR"
    timeout: float = 10.0
    organization: str = "AYDF"

    @property
    def is_configured(self) -> bool:
        return bool(self.key_id and self.key_secret)


@dataclass(frozen=True)
class EmailConfig:
    service_id: Optional[str]
    template_id: Optional[str]
    public_key: Optional[str]
    private_key: Optional[str]
    api_url: str = "https://api.emailjs.com/api/v1.0/email/send"
    timeout: float = 10.0

    @property
    def is_configured(self) -> bool:
        return bool(self.service_id and self.template_id and self.public_key)


class Settings:
    """Environment backed settings, read once per process."""

    def __init__(self):
        self.database_url = os.getenv("DATABASE_URL") or os.getenv("SQLALCHEMY_DATABASE_URL") or "sqlite:///./aydf.db"
        # Hosting platforms still hand out 'postgres://' URLs, SQLAlchemy wants 'postgresql://'
        if self.database_url.startswith("postgres://"):
            self.database_url = self.database_url.replace("postgres://", "postgresql://", 1)

        self.secret_key = os.getenv("SECRET_KEY", "some_random_secret_key")
        self.algorithm = os.getenv("ALGORITHM", "HS256")
        self.access_token_expire_minutes = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60))

        self.razorpay_key_id = os.getenv("RAZORPAY_KEY_ID")
        self.razorpay_key_secret = os.getenv("RAZORPAY_KEY_SECRET")
        self.gateway_timeout = float(os.getenv("GATEWAY_TIMEOUT_SECONDS", 10))

        self.emailjs_service_id = os.getenv("EMAILJS_SERVICE_ID")
        self.emailjs_template_id = os.getenv("EMAILJS_TEMPLATE_ID")
        self.emailjs_public_key = os.getenv("EMAILJS_PUBLIC_KEY")
        self.emailjs_private_key = os.getenv("EMAILJS_PRIVATE_KEY")

        self.frontend_url = os.getenv("FRONTEND_URL", "http://localhost:3000")
        self.org_code = os.getenv("ORG_CODE", "AYDF")
        self.membership_fee = int(os.getenv("MEMBERSHIP_FEE", 500))
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()

    def gateway(self) -> GatewayConfig:
        return GatewayConfig(
            key_id=self.razorpay_key_id,
            key_secret=self.razorpay_key_secret,
            timeout=self.gateway_timeout,
            organization=self.org_code,
        )

    def email(self) -> EmailConfig:
        return EmailConfig(
            service_id=self.emailjs_service_id,
            template_id=self.emailjs_template_id,
            public_key=self.emailjs_public_key,
            private_key=self.emailjs_private_key,
        )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
