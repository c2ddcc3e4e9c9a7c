"""Zoho OAuth access-token cache with single-flight refresh."""

import asyncio
import contextlib
from datetime import UTC, datetime, timedelta
from typing import Any, Callable

import httpx
import structlog

from cfo_bot.config import get_settings
from cfo_bot.errors import AuthError
from cfo_bot.models import Credential

logger = structlog.get_logger(__name__)

# Used when the issuer omits expires_in
DEFAULT_TOKEN_LIFETIME = 3600


def _utcnow() -> datetime:
    return datetime.now(UTC)


class CredentialCache:
    """Holds the current access token and refreshes it lazily before expiry.

    Refreshes are serialized by a lock: callers arriving while a refresh is
    in flight wait for it and then reuse its result instead of issuing a
    second token request.
    """

    def __init__(
        self,
        accounts_url: str | None = None,
        client_id: str | None = None,
        client_secret: str | None = None,
        refresh_token: str | None = None,
        skew_seconds: float | None = None,
        timeout: float | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        settings = get_settings()
        self.accounts_url = (accounts_url or settings.zoho_accounts_url).rstrip("/")
        self._client_id = client_id or settings.zoho_client_id
        self._client_secret = client_secret or settings.zoho_client_secret.get_secret_value()
        self._refresh_token = refresh_token or settings.zoho_refresh_token.get_secret_value()
        self._skew = timedelta(
            seconds=settings.zoho_token_skew_seconds if skew_seconds is None else skew_seconds
        )
        self._timeout = timeout or settings.zoho_timeout
        self._clock = clock

        self._credential: Credential | None = None
        self._lock = asyncio.Lock()
        self._client: httpx.AsyncClient | None = None
        self._refresh_task: asyncio.Task[None] | None = None
        self.refresh_count = 0

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.accounts_url,
                timeout=httpx.Timeout(self._timeout),
            )
        return self._client

    async def close(self) -> None:
        """Stop background refresh and close the HTTP client."""
        await self.stop_auto_refresh()
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def credential(self) -> Credential | None:
        """The cached credential, without triggering a refresh."""
        return self._credential

    def _needs_refresh(self, now: datetime) -> bool:
        return self._credential is None or now >= self._credential.expires_at - self._skew

    async def get_token(self) -> Credential:
        """Return a usable credential, refreshing it first if it is due."""
        if not self._needs_refresh(self._clock()):
            return self._credential  # type: ignore[return-value]

        async with self._lock:
            # Another caller may have refreshed while we waited for the lock
            if not self._needs_refresh(self._clock()):
                return self._credential  # type: ignore[return-value]
            try:
                return await self._refresh()
            except AuthError:
                stale = self._credential
                if stale is not None and self._clock() < stale.expires_at + self._skew:
                    logger.warning(
                        "serving_stale_token",
                        expires_at=stale.expires_at.isoformat(),
                    )
                    return stale
                raise

    def invalidate(self, token: str | None = None) -> None:
        """Drop the cached credential so the next get_token() refreshes.

        When ``token`` is given, only that token is dropped: a rejection of a
        token that has already been replaced leaves the newer one cached.
        """
        if self._credential is None:
            return
        if token is not None and self._credential.token != token:
            logger.debug("token_already_replaced")
            return
        logger.info("token_invalidated")
        self._credential = None

    async def refresh(self) -> Credential:
        """Force a refresh regardless of the cached expiry."""
        async with self._lock:
            return await self._refresh()

    async def _refresh(self) -> Credential:
        """Exchange the long-lived refresh token for a new access token."""
        client = await self._get_client()
        try:
            response = await client.post(
                "/oauth/v2/token",
                params={
                    "refresh_token": self._refresh_token,
                    "client_id": self._client_id,
                    "client_secret": self._client_secret,
                    "grant_type": "refresh_token",
                },
            )
        except httpx.RequestError as e:
            logger.warning("token_refresh_request_failed", error=str(e))
            raise AuthError(f"Token request failed: {e}") from e

        self.refresh_count += 1
        data = self._parse_token_response(response)

        token = data.get("access_token")
        if not token:
            logger.warning(
                "token_refresh_rejected",
                status_code=response.status_code,
                error=data.get("error"),
            )
            raise AuthError(
                f"Token refresh rejected: {data.get('error', 'no access_token')}",
                status_code=response.status_code,
                details=data,
            )

        try:
            lifetime = int(data.get("expires_in", DEFAULT_TOKEN_LIFETIME))
        except (TypeError, ValueError):
            lifetime = DEFAULT_TOKEN_LIFETIME

        self._credential = Credential(
            token=token,
            expires_at=self._clock() + timedelta(seconds=lifetime),
        )
        logger.info("token_refreshed", expires_in=lifetime)
        return self._credential

    @staticmethod
    def _parse_token_response(response: httpx.Response) -> dict[str, Any]:
        if response.status_code >= 400:
            try:
                details = response.json()
            except ValueError:
                details = {"raw": response.text[:500] if response.text else "empty response"}
            raise AuthError(
                f"Token endpoint error: {response.status_code}",
                status_code=response.status_code,
                details=details,
            )
        try:
            data = response.json()
        except ValueError as e:
            raise AuthError("Invalid token response format", status_code=response.status_code) from e
        if not isinstance(data, dict):
            raise AuthError("Invalid token response format", status_code=response.status_code)
        return data

    # === Background refresh ===

    def start_auto_refresh(self, interval: float | None = None) -> None:
        """Refresh proactively every `interval` seconds in a background task."""
        interval = get_settings().zoho_token_refresh_interval if interval is None else interval
        if interval <= 0 or self._refresh_task is not None:
            return
        self._refresh_task = asyncio.create_task(self._auto_refresh_loop(interval))
        logger.info("auto_refresh_started", interval=interval)

    async def stop_auto_refresh(self) -> None:
        task, self._refresh_task = self._refresh_task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _auto_refresh_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await self.refresh()
            except AuthError as e:
                logger.warning("auto_refresh_failed", error=str(e), status_code=e.status_code)
