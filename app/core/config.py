from enum import Enum
from functools import lru_cache

from pydantic_settings import BaseSettings


class StorageKind(str, Enum):
    AUTO = "auto"
    SQLITE = "sqlite"
    SUPABASE = "supabase"


class RedemptionPolicy(str, Enum):
    # Stamps never reach the threshold: the scan landing on threshold - 1
    # announces the reward, the next scan redeems.
    NEXT_SCAN = "next_scan"
    # Legacy server behaviour: stamps climb to the threshold, the scan after
    # that redeems.
    HOLD_AT_THRESHOLD = "hold_at_threshold"


class Settings(BaseSettings):
    environment: str = "development"
    log_level: str = "INFO"

    # QR code shared secret (printed at the counter)
    qr_secret: str = ""

    # Stamp card rules
    stamp_threshold: int = 10
    cooldown_seconds: int = 120
    redemption_policy: RedemptionPolicy = RedemptionPolicy.NEXT_SCAN
    reward_message: str = "Congratulations! You've earned a free reward for being a loyal customer!"

    # Storage
    storage_backend: StorageKind = StorageKind.AUTO
    database_path: str = "data/loyalty.sqlite"

    # Supabase (networked store)
    supabase_url: str = ""
    supabase_secret_key: str = ""

    # Server
    cors_origins: list[str] = ["*"]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_secret_key)


@lru_cache
def get_settings() -> Settings:
    return Settings()
