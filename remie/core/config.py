from functools import lru_cache
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    """
    # Database settings.
    DATABASE_URL: str

    # JWT settings.
    SECRET_KEY: str
    REFRESH_SECRET_KEY: str = ""
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30
    PASSWORD_RESET_EXPIRE_MINUTES: int = 60

    # Paystack
    PAYSTACK_SECRET_KEY: str = ""
    PAYSTACK_PUBLIC_KEY: str = ""
    PAYSTACK_BASE_URL: str = "https://api.paystack.co"
    PAYSTACK_CALLBACK_URL: str = "http://localhost:3000/dashboard/wallet/fund"

    # Remita (RRR generation)
    REMITA_BASE_URL: str = "https://remitademo.net"
    REMITA_MERCHANT_ID: str = ""
    REMITA_API_KEY: str = ""
    REMITA_SERVICE_TYPE_ID: str = ""

    # Loans
    MIN_LOAN_AMOUNT: float = 5000
    MAX_LOAN_AMOUNT: float = 50000
    LOAN_INTEREST_RATE: float = 5.0  # Annual percentage
    MIN_LOAN_TENURE_DAYS: int = 7
    MAX_LOAN_TENURE_DAYS: int = 90
    LOAN_AUTO_APPROVE: bool = True

    # Wallet limits applied to new wallets
    DEFAULT_DAILY_LIMIT: float = 50000
    DEFAULT_MONTHLY_LIMIT: float = 500000

    # P2P
    P2P_MAX_TRANSFER_AMOUNT: float = 50000
    P2P_FEE_PERCENT: float = 0

    # Email
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 465
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    EMAIL_FROM: str = "REMIE <no-reply@remie.app>"
    EMAILS_ENABLED: bool = False

    # Frontend / CORS
    FRONTEND_URL: str = "http://localhost:3000"
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:3001",
        "https://remiepay.web.app",
        "https://remiepay.firebaseapp.com",
    ]

    # App settings.
    APP_NAME: str = "REMIE API"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )

    @property
    def refresh_secret(self) -> str:
        return self.REFRESH_SECRET_KEY or f"{self.SECRET_KEY}-refresh"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    """
    return Settings()
