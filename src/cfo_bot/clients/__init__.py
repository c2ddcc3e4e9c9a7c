"""Clients for the Zoho credential issuer and the Zoho Books ledger."""

from cfo_bot.clients.credentials import CredentialCache
from cfo_bot.clients.zoho_books import (
    ResponseStatus,
    ZohoBooksClient,
    build_url,
    classify_payload,
)

__all__ = [
    "CredentialCache",
    "ZohoBooksClient",
    "ResponseStatus",
    "build_url",
    "classify_payload",
]
