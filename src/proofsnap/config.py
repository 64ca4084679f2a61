"""ProofSnap — Centralized typed configuration.

All values can be overridden via environment variables with the PROOFSNAP_ prefix,
except fields with explicit validation_alias which use their own env var name.

Usage:
    from proofsnap.config import get_settings
    settings = get_settings()
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Typed, validated library settings."""

    model_config = {"env_prefix": "PROOFSNAP_", "env_file": ".env", "extra": "ignore", "populate_by_name": True}

    # --- Core ---
    env: str = Field("development", description="Runtime environment")
    version: str = Field("1.0.0", description="Library version")
    debug: bool = Field(False, description="Debug mode flag")
    log_level: str = Field("INFO", description="Log level")
    log_json: bool = Field(True, description="Emit JSON-structured logs")

    # --- Oracles ---
    api_base_url: str = Field("http://localhost:3001", description="Detection backend base URL")
    oracle_timeout: float = Field(30.0, description="Per-oracle request timeout in seconds")

    # --- Ledger ---
    anchor_url: str = Field("", description="Anchor gateway base URL (empty = disabled)")
    anchor_timeout: float = Field(60.0, description="Anchor submission timeout in seconds")
    contract_address: str = Field(
        "0x0000000000000000000000000000000000000000", description="Proof registry contract address"
    )
    explorer_url: str = Field("https://testnet.dhscan.io", description="Block explorer base URL")
    explorer_timeout: float = Field(15.0, description="Block explorer lookup timeout in seconds")
    faucet_url: str = Field("https://apps.datahaven.xyz/faucet", description="Testnet faucet URL")

    # --- Cloud sync ---
    cloud_url: str = Field(
        "",
        validation_alias=AliasChoices("SUPABASE_URL", "PROOFSNAP_CLOUD_URL"),
        description="Cloud proof table base URL",
    )
    cloud_key: str = Field(
        "",
        validation_alias=AliasChoices("SUPABASE_KEY", "PROOFSNAP_CLOUD_KEY"),
        description="Cloud API key",
    )
    cloud_timeout: float = Field(15.0, description="Cloud sync timeout in seconds")

    # --- Storage ---
    database_url: str = Field(
        "sqlite:///./proofsnap.db",
        validation_alias=AliasChoices("DATABASE_URL", "PROOFSNAP_DATABASE_URL"),
        description="Record store URL (sqlite:///path, redis://..., memory://)",
    )
    key_store_dir: str = Field("./keys", description="Directory of the file-backed key store")
    watermark_dir: str = Field("./watermarked", description="Output directory for watermarked copies")

    # --- Derived helpers ---
    @property
    def is_production(self) -> bool:
        return self.env.lower() == "production"

    @property
    def anchor_configured(self) -> bool:
        return bool(self.anchor_url.strip())

    @property
    def cloud_configured(self) -> bool:
        url = self.cloud_url.strip()
        return len(url) > 10 and len(self.cloud_key) > 10 and "your-project" not in url


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached singleton of the library settings."""
    return Settings()
