from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env", env_prefix="CARDLEDGER_")

    app_name: str = "CardLedger"
    debug: bool = False
    log_level: str = "INFO"

    database_url: str = "sqlite+aiosqlite:///./cardledger.db"

    # Administrator created by bootstrap(); the only Authority that exists
    # before any directory command runs.
    admin_identity: str = "admin"
    admin_name: str = "CardLedger Administrator"
    admin_auth_id: str = "authority-center"


settings = Settings()


# =============================================================================
# LEDGER KEYS AND FORMATS
# =============================================================================

# Registry index keys
USER_REGISTRY_KEY = "user_holder"
SHOP_REGISTRY_KEY = "shop_holder"
TEMPLATE_REGISTRY_KEY = "card_template_holder"
CARD_REGISTRY_KEY = "card_holder"

# Directory records live under "user:<identity>" and "shop:<shopid>"
USER_KEY_PREFIX = "user:"
SHOP_KEY_PREFIX = "shop:"

# Shop ledgers live under "shopledger-<shop>-<template>"
SHOP_LEDGER_KEY_PREFIX = "shopledger"

# Issued card ids: <template>-A<base + index>
CARD_ID_BASE = 1_000_000
CARD_ID_SEPARATOR = "-A"

# Human-readable transition timestamps, e.g. "2017-03-02 01:04:05 PM"
LEDGER_DATE_FORMAT = "%Y-%m-%d %I:%M:%S %p"
