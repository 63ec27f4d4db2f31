from pydantic_settings import BaseSettings
from typing import Optional, List

class Settings(BaseSettings):
    PROJECT_NAME: str = "Theory Exam Engine"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    SECRET_KEY: str = "dev-secret-change-me"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 2

    # CORS
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:3001",
        "http://127.0.0.1:3000",
        "http://localhost:5500"
    ]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    SLOW_REQUEST_MS: int = 2000

    # Database Configuration
    DATABASE_URL: str = "sqlite:///./theory_exam.db"
    TEST_DATABASE_URL: Optional[str] = None

    # Exam composition
    EXAM_TOTAL_QUESTIONS: int = 20
    EXAM_PICTURE_QUESTIONS_MIN: int = 4
    EXAM_TIME_LIMIT_MINUTES: int = 20
    EXAM_PASSING_SCORE: int = 12
    EXAM_RECENT_ATTEMPTS_WINDOW: int = 3
    EXAM_POOL_OVERSAMPLE: int = 3
    EXAM_LOW_ATTEMPTS_WARNING: int = 2

    # ITEC Pay gateway, one key per payment method
    ITECPAY_API_URL: str = "https://pay.itecpay.rw/api"
    ITECPAY_MTN_KEY: Optional[str] = None
    ITECPAY_AIRTEL_KEY: Optional[str] = None
    ITECPAY_SPENN_KEY: Optional[str] = None
    ITECPAY_TIMEOUT_SECONDS: float = 30.0

    # Payments
    PAYMENT_WEBHOOK_SECRET: Optional[str] = None
    PAYMENT_PENDING_EXPIRY_MINUTES: int = 15
    PAYMENT_SWEEP_INTERVAL_MINUTES: int = 5
    PAYMENT_MIN_AMOUNT: float = 100
    PAYMENT_MAX_AMOUNT: float = 1_000_000
    PAYMENT_MANUAL_VERIFY_ENABLED: bool = False
    SUBSCRIPTION_COUNT_PLAN_YEARS: int = 10

    class Config:
        env_file = ".env"

settings = Settings()
