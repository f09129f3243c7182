from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from qrpay.models.payment import PaymentProfile


class Settings(BaseSettings):
    """Application settings loaded from environment with defaults.

    Environment variable mapping follows pydantic's rules (e.g., APP_NAME, DEBUG,
    DATA_DIR, DB_FILENAME, CACHE_CAPACITY, RENDERER, PAYEE_NAME).
    """

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Basic app metadata
    app_name: str = "QR Payments"
    debug: bool = True
    # JSON lines on stdout; false switches to a plain text format for local runs
    log_json: bool = True
    version: str = "0.1.0"

    # Data & persistence
    data_dir: Path = Path("data")
    db_filename: str = "qrpay.sqlite3"
    db_path: Optional[Path] = None  # derived if not provided

    # QR image cache; 0 keeps every rendered image
    cache_capacity: int = 100
    stats_flush_interval_seconds: float = 30.0

    # Allowed: 'qrcode' (qrcode + Pillow)
    renderer: str = "qrcode"
    preload_on_startup: bool = False

    # Payee requisites
    payee_name: str = "IP Ivanov Ivan Ivanovich"
    payee_account: str = "40802810000000000001"
    payee_inn: str = "770000000001"
    payee_ogrn: str = "300000000000001"
    bank_name: str = "AO Example Bank"
    bank_bic: str = "044525000"
    bank_inn: str = "7700000000"
    bank_corr_account: str = "30101810000000000000"
    bank_legal_address: str = "127000, Moscow"

    def init_post_load(self) -> None:
        """Finalize derived fields and ensure directories exist."""
        if self.db_path is None:
            self.db_path = self.data_dir / self.db_filename
        self.data_dir.mkdir(parents=True, exist_ok=True)
        allowed = {"qrcode"}
        if self.renderer not in allowed:
            raise ValueError(
                f"Unsupported renderer '{self.renderer}'. Allowed: {allowed}"
            )
        if self.cache_capacity < 0:
            raise ValueError("cache_capacity cannot be negative")
        if self.stats_flush_interval_seconds <= 0:
            raise ValueError("stats_flush_interval_seconds must be positive")

    @property
    def effective_cache_capacity(self) -> Optional[int]:
        return self.cache_capacity or None

    def payment_profile(self) -> PaymentProfile:
        return PaymentProfile(
            legal_name=self.payee_name,
            account_number=self.payee_account,
            payee_inn=self.payee_inn,
            ogrn=self.payee_ogrn,
            bank_name=self.bank_name,
            bic=self.bank_bic,
            bank_inn=self.bank_inn,
            corr_account=self.bank_corr_account,
            legal_address=self.bank_legal_address,
        )


@lru_cache
def get_settings() -> Settings:
    settings = Settings()
    settings.init_post_load()
    return settings
