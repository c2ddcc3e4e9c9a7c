"""Configuration settings for the CFO bot."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

CashSource = Literal["chart_of_accounts", "bank_accounts", "balance_sheet", "cash_flow"]


class FlatSettings(BaseSettings):
    """Flat settings read from environment variables or a .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Chat platform (consumed by the chat adapter, not by the engine)
    slack_bot_token: SecretStr | None = Field(default=None, validation_alias="SLACK_BOT_TOKEN")
    slack_signing_secret: SecretStr | None = Field(
        default=None, validation_alias="SLACK_SIGNING_SECRET"
    )

    # Zoho OAuth client
    zoho_client_id: str = Field(..., validation_alias="ZB_CLIENT_ID")
    zoho_client_secret: SecretStr = Field(..., validation_alias="ZB_CLIENT_SECRET")
    zoho_refresh_token: SecretStr = Field(..., validation_alias="ZB_REFRESH_TOKEN")

    # Entities
    org_id_kk: str = Field(..., validation_alias="ORG_ID_KK")
    org_id_pt: str = Field(..., validation_alias="ORG_ID_PT")

    # Zoho endpoints
    zoho_accounts_url: str = Field(
        default="https://accounts.zoho.com", validation_alias="ZOHO_ACCOUNTS_URL"
    )
    zoho_books_api_url: str = Field(
        default="https://books.zoho.com/api/v3", validation_alias="ZOHO_BOOKS_API_URL"
    )
    zoho_books_api_url_jp: str = Field(
        default="https://books.zoho.jp/api/v3", validation_alias="ZOHO_BOOKS_API_URL_JP"
    )

    # Zoho client behaviour
    zoho_timeout: float = Field(default=30.0, validation_alias="ZOHO_TIMEOUT")
    zoho_token_skew_seconds: float = Field(
        default=60.0, validation_alias="ZOHO_TOKEN_SKEW_SECONDS"
    )
    # Zoho access tokens live 60 minutes; refresh at 50 (0 disables)
    zoho_token_refresh_interval: float = Field(
        default=3000.0, validation_alias="ZOHO_TOKEN_REFRESH_INTERVAL"
    )
    zoho_max_pages: int = Field(default=10, validation_alias="ZOHO_MAX_PAGES")

    # Which report answers "cash balance"
    cash_source: CashSource = Field(default="bank_accounts", validation_alias="CASH_SOURCE")

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", validation_alias="LOG_LEVEL"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", validation_alias="LOG_FORMAT"
    )


@lru_cache
def get_settings() -> FlatSettings:
    """Get cached settings instance."""
    return FlatSettings()
