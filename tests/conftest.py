"""Pytest configuration and fixtures."""

import os
from datetime import UTC, datetime, timedelta

import httpx
import pytest

# Set test environment variables before importing settings
os.environ.setdefault("ZB_CLIENT_ID", "test-client-id")
os.environ.setdefault("ZB_CLIENT_SECRET", "test-client-secret")
os.environ.setdefault("ZB_REFRESH_TOKEN", "test-refresh-token")
os.environ.setdefault("ORG_ID_KK", "kk-org")
os.environ.setdefault("ORG_ID_PT", "pt-org")

from cfo_bot.config import Entity  # noqa: E402


class FakeClock:
    """Controllable replacement for datetime.now(UTC)."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 10, 9, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def make_response(status_code: int, payload: object = None) -> httpx.Response:
    """Build a real httpx response with a JSON body."""
    if payload is None:
        return httpx.Response(status_code)
    return httpx.Response(status_code, json=payload)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def kk():
    return Entity(
        code="KK",
        name="UL KK (Japan)",
        org_id="kk-org",
        currency_symbol="¥",
        api_base_url="https://books.zoho.jp/api/v3",
    )


@pytest.fixture
def pt():
    return Entity(
        code="PT",
        name="UL PT (Indonesia)",
        org_id="pt-org",
        currency_symbol="Rp ",
        api_base_url="https://books.zoho.com/api/v3",
        thousands_separator=".",
    )


@pytest.fixture
def entities(kk, pt):
    return (kk, pt)


@pytest.fixture
def mock_token_response():
    """Successful Zoho token exchange."""
    return {
        "access_token": "t1",
        "api_domain": "https://www.zohoapis.com",
        "token_type": "Bearer",
        "expires_in": 3600,
    }


@pytest.fixture
def mock_invoices_response():
    """Zoho invoice list with a mix of statuses."""
    return {
        "code": 0,
        "message": "success",
        "invoices": [
            {
                "invoice_id": "1001",
                "invoice_number": "INV-0001",
                "customer_name": "Acme Trading",
                "status": "sent",
                "due_date": "2024-01-01",
                "balance": 500,
            },
            {
                "invoice_id": "1002",
                "invoice_number": "INV-0002",
                "customer_name": "Blue Ocean",
                "status": "partially_paid",
                "due_date": "2024-01-10",
                "balance": "1,250",
            },
            {
                "invoice_id": "1003",
                "invoice_number": "INV-0003",
                "customer_name": "Cedar Works",
                "status": "paid",
                "due_date": "2024-01-05",
                "balance": 0,
            },
            {
                "invoice_id": "1004",
                "invoice_number": "INV-0004",
                "customer_name": "Delta Foods",
                "status": "draft",
                "due_date": "2024-01-12",
                "balance": 900,
            },
        ],
        "page_context": {"page": 1, "per_page": 200, "has_more_page": False},
    }
