"""Answer finance questions by fanning out to every entity's ledger."""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from datetime import date
from typing import Any, TypeVar

import structlog

from cfo_bot.aging import classify
from cfo_bot.clients import CredentialCache, ResponseStatus, ZohoBooksClient, classify_payload
from cfo_bot.config import Entity, FlatSettings, get_entities, get_settings
from cfo_bot.errors import CfoBotError
from cfo_bot.extractors import extract_invoices, extract_total
from cfo_bot.formatting import aggregate, format_invoice_report, format_overdue_report
from cfo_bot.intents import Intent, Query, parse_query
from cfo_bot.models import AgingSummary, MonetaryTotal, ReportKind

logger = structlog.get_logger(__name__)

T = TypeVar("T")

Reply = Callable[[str], Awaitable[Any]]

CASH_SOURCES: dict[str, ReportKind] = {
    "chart_of_accounts": ReportKind.ACCOUNT_LIST,
    "bank_accounts": ReportKind.BANK_ACCOUNTS,
    "balance_sheet": ReportKind.BALANCE_SHEET,
    "cash_flow": ReportKind.CASH_FLOW,
}


class FinanceService:
    """Runs one finance query across the configured entities.

    Entity lookups run concurrently. A failing entity is reported as not
    available without affecting the others, and an unexpected failure while
    answering still produces a reply.
    """

    def __init__(
        self,
        ledger: ZohoBooksClient | None = None,
        entities: Sequence[Entity] | None = None,
        settings: FlatSettings | None = None,
        today: Callable[[], date] = date.today,
    ):
        self._settings = settings or get_settings()
        self.ledger = ledger or ZohoBooksClient(CredentialCache())
        self.entities = tuple(entities or get_entities(self._settings))
        self._today = today

    async def start(self) -> None:
        """Begin proactive token refresh."""
        self.ledger.credentials.start_auto_refresh(self._settings.zoho_token_refresh_interval)

    async def close(self) -> None:
        await self.ledger.close()
        await self.ledger.credentials.close()

    async def __aenter__(self) -> "FinanceService":
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    # === Chat boundary ===

    async def handle_message(self, text: str, say: Reply) -> bool:
        """Reply to ``text`` through ``say`` if it is a finance question."""
        reply = await self.handle_query(text)
        if reply is None:
            return False
        await say(reply)
        return True

    async def handle_query(self, text: str) -> str | None:
        """Answer a free-text question, or None if it is not one."""
        query = parse_query(text, self._today())
        if query is None:
            return None

        log = logger.bind(intent=query.intent.value, entities=list(query.entity_codes))
        log.info("query_received")
        try:
            return await self.answer(query)
        except Exception:
            log.exception("query_failed")
            return f"⚠️ Unable to fetch {query.intent.label} right now."

    async def answer(self, query: Query) -> str:
        entities = self._select_entities(query.entity_codes)
        reference_date = query.reference_date or self._today()

        if query.intent is Intent.CASH_BALANCE:
            return await self.cash_balance(entities, reference_date)
        if query.intent is Intent.INVOICES:
            return await self.invoices(entities, reference_date)
        if query.intent is Intent.OVERDUE_INVOICES:
            return await self.overdue_invoices(entities, reference_date)
        return await self.profit_and_loss(entities, reference_date)

    def _select_entities(self, codes: Sequence[str]) -> tuple[Entity, ...]:
        if not codes:
            return self.entities
        selected = tuple(entity for entity in self.entities if entity.code in codes)
        return selected or self.entities

    # === Queries ===

    def cash_source(self, reference_date: date) -> ReportKind:
        """Report answering "cash balance"; past dates need the balance sheet."""
        if reference_date != self._today():
            return ReportKind.BALANCE_SHEET
        return CASH_SOURCES[self._settings.cash_source]

    async def cash_balance(self, entities: Sequence[Entity], reference_date: date) -> str:
        kind = self.cash_source(reference_date)
        results = await self._fan_out(
            entities, lambda entity: self._fetch_total(entity, kind, reference_date)
        )
        title = "🏦 Cash balance"
        if reference_date != self._today():
            title += f" (as of {reference_date.isoformat()})"
        return aggregate(title, results, entities)

    async def profit_and_loss(self, entities: Sequence[Entity], reference_date: date) -> str:
        results = await self._fan_out(
            entities,
            lambda entity: self._fetch_total(entity, ReportKind.PROFIT_AND_LOSS, reference_date),
        )
        start = reference_date.replace(day=1)
        title = f"📊 Net profit ({start.isoformat()} to {reference_date.isoformat()})"
        return aggregate(title, results, entities)

    async def invoices(self, entities: Sequence[Entity], reference_date: date) -> str:
        results = await self._fan_out(
            entities, lambda entity: self._fetch_aging(entity, reference_date)
        )
        return format_invoice_report(results, entities, reference_date)

    async def overdue_invoices(self, entities: Sequence[Entity], reference_date: date) -> str:
        results = await self._fan_out(
            entities, lambda entity: self._fetch_aging(entity, reference_date)
        )
        return format_overdue_report(results, entities, reference_date)

    # === Per-entity fetches ===

    async def _fetch_total(
        self, entity: Entity, kind: ReportKind, reference_date: date
    ) -> MonetaryTotal | None:
        start = reference_date.replace(day=1)
        if kind is ReportKind.ACCOUNT_LIST:
            tree = await self.ledger.list_accounts(entity)
        elif kind is ReportKind.BANK_ACCOUNTS:
            tree = await self.ledger.list_bank_accounts(entity)
        elif kind is ReportKind.BALANCE_SHEET:
            tree = await self.ledger.get_balance_sheet(entity, reference_date)
        elif kind is ReportKind.CASH_FLOW:
            tree = await self.ledger.get_cash_flow(entity, start, reference_date)
        else:
            tree = await self.ledger.get_profit_and_loss(entity, start, reference_date)

        if classify_payload(tree) is ResponseStatus.EMPTY:
            logger.warning("ledger_returned_no_data", entity=entity.code, kind=kind.value)
            return None
        return extract_total(tree, kind, entity)

    async def _fetch_aging(self, entity: Entity, reference_date: date) -> AgingSummary:
        tree = await self.ledger.list_invoices(entity)
        return classify(extract_invoices(tree), reference_date)

    async def _fan_out(
        self,
        entities: Sequence[Entity],
        fetch: Callable[[Entity], Awaitable[T | None]],
    ) -> dict[str, T | None]:
        """Run ``fetch`` for every entity concurrently, keyed by entity code."""
        results = await asyncio.gather(*(self._guarded(entity, fetch) for entity in entities))
        return {entity.code: result for entity, result in zip(entities, results)}

    async def _guarded(
        self,
        entity: Entity,
        fetch: Callable[[Entity], Awaitable[T | None]],
    ) -> T | None:
        try:
            return await fetch(entity)
        except CfoBotError as e:
            logger.warning(
                "entity_unavailable",
                entity=entity.code,
                error=str(e),
                status_code=e.status_code,
            )
        except Exception:
            logger.exception("entity_fetch_error", entity=entity.code)
        return None
