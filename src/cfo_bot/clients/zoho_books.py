"""Read-only Zoho Books client scoped by entity."""

from datetime import date
from enum import Enum
from typing import Any
from urllib.parse import urlencode

import httpx
import structlog

from cfo_bot.clients.credentials import CredentialCache
from cfo_bot.config import Entity, get_settings
from cfo_bot.errors import LedgerApiError
from cfo_bot.models import Credential, ReportKind

logger = structlog.get_logger(__name__)

# Keys that carry no report data
_ENVELOPE_KEYS = frozenset({"code", "message", "page_context"})


class ResponseStatus(str, Enum):
    """Classification of a ledger response payload."""

    SUCCESS = "success"
    EMPTY = "empty"
    ERROR = "error"


def _has_content(value: Any) -> bool:
    if isinstance(value, (list, dict, str)):
        return bool(value)
    return value is not None


def classify_payload(payload: Any) -> ResponseStatus:
    """Classify a decoded response body.

    A payload carrying a non-zero ``code`` or an ``error`` field is an error
    even when delivered with HTTP 200.
    """
    if not isinstance(payload, dict):
        return ResponseStatus.ERROR
    if "error" in payload:
        return ResponseStatus.ERROR
    code = payload.get("code", 0)
    if code not in (0, "0"):
        return ResponseStatus.ERROR
    if not any(_has_content(value) for key, value in payload.items() if key not in _ENVELOPE_KEYS):
        return ResponseStatus.EMPTY
    return ResponseStatus.SUCCESS


def build_url(base_url: str, path: str, org_id: str, params: dict[str, Any] | None = None) -> str:
    """Compose an org-scoped request URL.

    The query joiner is ``&`` when ``path`` already carries a query string.
    """
    query = {"organization_id": org_id}
    for key, value in (params or {}).items():
        if value is None:
            continue
        query[key] = value.isoformat() if isinstance(value, date) else value
    joiner = "&" if "?" in path else "?"
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}{joiner}{urlencode(query)}"


class ZohoBooksClient:
    """Async client for the Zoho Books API.

    Every call is scoped to one entity's organization. HTTP failures and
    error payloads both raise LedgerApiError; an auth failure is retried
    exactly once with a freshly issued token.
    """

    def __init__(
        self,
        credentials: CredentialCache,
        timeout: float | None = None,
        max_pages: int | None = None,
    ):
        settings = get_settings()
        self.credentials = credentials
        self._timeout = timeout or settings.zoho_timeout
        self._max_pages = max_pages or settings.zoho_max_pages
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout))
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "ZohoBooksClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    @staticmethod
    def _get_headers(credential: Credential) -> dict[str, str]:
        return {"Authorization": f"Zoho-oauthtoken {credential.token}"}

    # === Generic Request Method ===

    async def call(
        self,
        entity: Entity,
        path: str,
        params: dict[str, Any] | None = None,
        retry_count: int = 0,
    ) -> dict[str, Any]:
        """GET an org-scoped endpoint and return the decoded report tree."""
        url = build_url(entity.api_base_url, path, entity.org_id, params)
        credential = await self.credentials.get_token()
        headers = self._get_headers(credential)
        client = await self._get_client()

        try:
            try:
                response = await client.get(url, headers=headers)
            except httpx.RequestError as e:
                raise LedgerApiError(f"Request failed: {e}") from e

            payload = self._decode(response)
            if response.status_code >= 400:
                raise LedgerApiError(
                    f"API error: {response.status_code}",
                    status_code=response.status_code,
                    details=payload,
                )

            status = classify_payload(payload)
            if status is ResponseStatus.ERROR:
                raise LedgerApiError(
                    f"API error code: {payload.get('code') if isinstance(payload, dict) else None}",
                    status_code=response.status_code,
                    details=payload,
                )
        except LedgerApiError as e:
            if e.is_auth_failure and retry_count < 1:
                logger.info("ledger_auth_retry", entity=entity.code, path=path)
                self.credentials.invalidate(credential.token)
                return await self.call(entity, path, params, retry_count + 1)
            logger.warning(
                "ledger_call_failed",
                entity=entity.code,
                path=path,
                status_code=e.status_code,
                details=e.details,
            )
            raise

        logger.debug("ledger_call", entity=entity.code, path=path, status=status.value)
        return payload

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            if response.status_code >= 400:
                return {"raw": response.text[:500] if response.text else "empty response"}
            raise LedgerApiError(
                "Invalid JSON response",
                status_code=response.status_code,
                details={"raw": response.text[:500]},
            ) from None

    # === Report Endpoints ===

    async def list_accounts(self, entity: Entity) -> dict[str, Any]:
        """Get the chart of accounts."""
        return await self.call(entity, ReportKind.ACCOUNT_LIST.endpoint)

    async def list_bank_accounts(self, entity: Entity) -> dict[str, Any]:
        """Get bank and cash accounts with their current balances."""
        return await self.call(entity, ReportKind.BANK_ACCOUNTS.endpoint)

    async def get_balance_sheet(self, entity: Entity, as_of_date: date) -> dict[str, Any]:
        """Get the balance sheet as of a date."""
        return await self.call(
            entity, ReportKind.BALANCE_SHEET.endpoint, params={"date": as_of_date}
        )

    async def get_cash_flow(
        self, entity: Entity, from_date: date, to_date: date
    ) -> dict[str, Any]:
        """Get the cash flow statement for a period."""
        return await self.call(
            entity,
            ReportKind.CASH_FLOW.endpoint,
            params={"from_date": from_date, "to_date": to_date},
        )

    async def get_profit_and_loss(
        self, entity: Entity, from_date: date, to_date: date
    ) -> dict[str, Any]:
        """Get the profit and loss report for a period."""
        return await self.call(
            entity,
            ReportKind.PROFIT_AND_LOSS.endpoint,
            params={"from_date": from_date, "to_date": to_date},
        )

    async def list_invoices(
        self, entity: Entity, status: str | None = None, per_page: int = 200
    ) -> dict[str, Any]:
        """List invoices, following pagination, merged into one payload."""
        invoices: list[Any] = []
        payload: dict[str, Any] = {}
        for page in range(1, self._max_pages + 1):
            payload = await self.call(
                entity,
                ReportKind.INVOICES.endpoint,
                params={"status": status, "page": page, "per_page": per_page},
            )
            batch = payload.get("invoices")
            if isinstance(batch, list):
                invoices.extend(batch)
            page_context = payload.get("page_context")
            if not (isinstance(page_context, dict) and page_context.get("has_more_page")):
                break
        else:
            logger.warning("invoice_pages_truncated", entity=entity.code, max_pages=self._max_pages)

        merged = {key: value for key, value in payload.items() if key != "page_context"}
        merged["invoices"] = invoices
        return merged
