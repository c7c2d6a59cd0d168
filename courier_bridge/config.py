"""
Central configuration – loaded once at startup from environment / .env file.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # ── Database ────────────────────────────────────────────────────────────
    database_url: str = "sqlite+aiosqlite:///./session_storage.db"

    # ── Platform extension ──────────────────────────────────────────────────
    extension_api_key: str = ""
    extension_api_secret: str = ""
    extension_base_url: str = "http://localhost:8080"
    fp_api_domain: str = "https://api.fynd.com"
    # Tenant used when a courier callback carries no company reference
    default_company_id: str = "11874"

    # ── Courier (Bob Go) ────────────────────────────────────────────────────
    bobgo_default_url: str = "https://api.sandbox.bobgo.co.za"
    # Fallback token when a configuration row has none
    bobgo_token: Optional[str] = None
    default_currency: str = "ZAR"
    default_collection_code: str = "0181"

    # ── Webhook security ─────────────────────────────────────────────────────
    webhook_shared_secret: str = ""
    # If set, also accept Bearer <token> instead of HMAC
    webhook_bearer_token: Optional[str] = None

    # ── Admin UI ─────────────────────────────────────────────────────────────
    # Secret for signing session cookies. Generate: openssl rand -hex 32
    session_secret_key: str = "change-me-in-production-use-openssl-rand-hex-32"
    # Fernet key for encrypting courier and platform tokens. Generate:
    #   python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())"
    config_encryption_key: str = ""
    bootstrap_admin_user: Optional[str] = None
    bootstrap_admin_password: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_prefix="",
        populate_by_name=True,
    )

    @property
    def extension_id(self) -> str:
        return self.extension_api_key or "extension-bobgo"

    @property
    def platform_base(self) -> str:
        return self.fp_api_domain.rstrip("/")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
