"""Domain types shared by the extractors, the aging classifier and the formatters."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from cfo_bot.config.entities import Entity


@dataclass(frozen=True)
class Credential:
    """A short-lived ledger access token."""

    token: str
    expires_at: datetime

    def __repr__(self) -> str:
        return f"Credential(token='***', expires_at={self.expires_at.isoformat()})"


class ReportKind(str, Enum):
    """Ledger reports the engine knows how to read."""

    ACCOUNT_LIST = "account_list"
    BANK_ACCOUNTS = "bank_accounts"
    BALANCE_SHEET = "balance_sheet"
    CASH_FLOW = "cash_flow"
    INVOICES = "invoices"
    PROFIT_AND_LOSS = "profit_and_loss"

    @property
    def endpoint(self) -> str:
        return REPORT_ENDPOINTS[self]


REPORT_ENDPOINTS: dict[ReportKind, str] = {
    ReportKind.ACCOUNT_LIST: "/chartofaccounts",
    ReportKind.BANK_ACCOUNTS: "/bankaccounts",
    ReportKind.BALANCE_SHEET: "/reports/balancesheet",
    ReportKind.CASH_FLOW: "/reports/cashflow",
    ReportKind.INVOICES: "/invoices",
    ReportKind.PROFIT_AND_LOSS: "/reports/profitandloss",
}


@dataclass(frozen=True)
class MonetaryTotal:
    """A single amount for one entity, in that entity's currency."""

    entity: Entity
    amount: Decimal

    @property
    def currency(self) -> str:
        return self.entity.currency_symbol


@dataclass(frozen=True)
class LineItem:
    """An outstanding invoice (or bill) as read from the ledger."""

    id: str
    number: str
    counterparty_name: str
    due_date: date | None
    outstanding_amount: Decimal
    status: str


class AgingBucket(str, Enum):
    """Due-date proximity of an outstanding invoice relative to a reference date."""

    DUE_TODAY = "due_today"
    DUE_WITHIN_7_DAYS = "due_within_7_days"
    OVERDUE = "overdue"
    OTHER_OUTSTANDING = "other_outstanding"


@dataclass
class AgingSummary:
    """Result of classifying one entity's outstanding invoices."""

    reference_date: date
    outstanding_total: Decimal = Decimal("0")
    due_today_total: Decimal = Decimal("0")
    due_within_7_total: Decimal = Decimal("0")
    overdue_total: Decimal = Decimal("0")
    other_total: Decimal = Decimal("0")
    overdue_detail: list[LineItem] = field(default_factory=list)
    # One entry per classified invoice, in input order
    classified: list[tuple[LineItem, AgingBucket]] = field(default_factory=list)

    @property
    def bucket_totals(self) -> dict[AgingBucket, Decimal]:
        return {
            AgingBucket.DUE_TODAY: self.due_today_total,
            AgingBucket.DUE_WITHIN_7_DAYS: self.due_within_7_total,
            AgingBucket.OVERDUE: self.overdue_total,
            AgingBucket.OTHER_OUTSTANDING: self.other_total,
        }
