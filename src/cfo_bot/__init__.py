"""UL CFO bot - finance answers for the KK and PT entities from Zoho Books."""

__version__ = "0.1.0"

from cfo_bot.aging import bucket_for, classify
from cfo_bot.clients import CredentialCache, ZohoBooksClient
from cfo_bot.config import Entity, configure_logging, get_entities, get_settings
from cfo_bot.errors import AuthError, CfoBotError, LedgerApiError
from cfo_bot.extractors import extract
from cfo_bot.formatting import aggregate, format_amount
from cfo_bot.intents import Intent, Query, parse_query
from cfo_bot.models import (
    AgingBucket,
    AgingSummary,
    Credential,
    LineItem,
    MonetaryTotal,
    ReportKind,
)
from cfo_bot.service import FinanceService

__all__ = [
    # Version
    "__version__",
    # Clients
    "CredentialCache",
    "ZohoBooksClient",
    # Engine
    "extract",
    "classify",
    "bucket_for",
    "aggregate",
    "format_amount",
    "FinanceService",
    # Intents
    "Intent",
    "Query",
    "parse_query",
    # Models
    "AgingBucket",
    "AgingSummary",
    "Credential",
    "Entity",
    "LineItem",
    "MonetaryTotal",
    "ReportKind",
    # Errors
    "CfoBotError",
    "AuthError",
    "LedgerApiError",
    # Config
    "get_settings",
    "get_entities",
    "configure_logging",
]
