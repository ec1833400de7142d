import os
from dataclasses import dataclass, field
from typing import List, Optional, Tuple


def _split(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


@dataclass(frozen=True)
class Settings:
    database_url: str = "mongodb://localhost:27017"
    database_name: str = "storefront"
    jwt_secret: str = "devsecret"
    jwt_algorithm: str = "HS256"
    jwt_expiry_days: int = 7
    razorpay_key_id: Optional[str] = None
    razorpay_key_secret: str = "test_key_secret"
    currency: str = "INR"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    admin_email: Optional[str] = None
    admin_password: Optional[str] = None
    log_level: str = "INFO"
    port: int = 8000
    # Order statuses whose total counts toward revenue and customer spend
    revenue_statuses: Tuple[str, ...] = ("confirmed", "shipped", "delivered")

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            database_name=os.getenv("DATABASE_NAME", cls.database_name),
            jwt_secret=os.getenv("JWT_SECRET", cls.jwt_secret),
            jwt_expiry_days=int(os.getenv("JWT_EXPIRY_DAYS", cls.jwt_expiry_days)),
            razorpay_key_id=os.getenv("RAZORPAY_KEY_ID") or None,
            razorpay_key_secret=os.getenv("RAZORPAY_KEY_SECRET", cls.razorpay_key_secret),
            currency=os.getenv("CURRENCY", cls.currency),
            cors_origins=_split(os.getenv("CORS_ORIGINS", "*")),
            admin_email=os.getenv("ADMIN_EMAIL") or None,
            admin_password=os.getenv("ADMIN_PASSWORD") or None,
            log_level=os.getenv("LOG_LEVEL", cls.log_level),
            port=int(os.getenv("PORT", cls.port)),
        )
