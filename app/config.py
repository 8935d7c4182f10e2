import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def _env_optional_int(name: str) -> int | None:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return int(value)


@dataclass(frozen=True)
class Settings:
    # Default timing policy; admins may change the live policy at runtime
    lawyer_approval_hours: int = int(os.getenv("LAWYER_APPROVAL_HOURS", "24"))
    client_payment_minutes: int = int(os.getenv("CLIENT_PAYMENT_MINUTES", "10"))
    case_payment_days: int = int(os.getenv("CASE_PAYMENT_DAYS", "7"))

    # Deadline loop
    sweep_interval_seconds: float = float(os.getenv("SWEEP_INTERVAL_SECONDS", "5"))

    # Notification feed
    notification_feed_limit: int = int(os.getenv("NOTIFICATION_FEED_LIMIT", "50"))

    # Simulated counterpart replies on case messages
    auto_reply_enabled: bool = _env_bool("AUTO_REPLY_ENABLED", "true")
    auto_reply_min_seconds: float = float(os.getenv("AUTO_REPLY_MIN_SECONDS", "2"))
    auto_reply_max_seconds: float = float(os.getenv("AUTO_REPLY_MAX_SECONDS", "4"))

    seed_demo_data: bool = _env_bool("SEED_DEMO_DATA", "false")
    random_seed: int | None = _env_optional_int("RANDOM_SEED")

    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Branding
    brand_name: str = os.getenv("BRAND_NAME", "LexLink Lifecycle")
    currency: str = os.getenv("CURRENCY", "LKR")


settings = Settings()
