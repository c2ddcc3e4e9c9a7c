"""Reduce raw Zoho Books report trees to totals and line items.

Every extractor is total: a missing node, a wrongly-typed field or an
unparseable amount contributes zero (or nothing) instead of raising, so one
entity's malformed payload never aborts another entity's answer.
"""

import math
from collections.abc import Callable, Iterator
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

import structlog

from cfo_bot.config import Entity
from cfo_bot.models import LineItem, MonetaryTotal, ReportKind

logger = structlog.get_logger(__name__)

ZERO = Decimal("0")
# Larger magnitudes are corrupt data, and would overflow the decimal context when rounded
MAX_AMOUNT = Decimal("1e18")

# Balance field names, first present wins. Zoho has renamed these across
# API versions and they differ between endpoints.
BALANCE_FIELDS: dict[ReportKind, tuple[str, ...]] = {
    ReportKind.ACCOUNT_LIST: ("balance", "bcy_balance", "current_balance", "account_balance"),
    ReportKind.BANK_ACCOUNTS: ("bcy_balance", "balance", "current_balance"),
    ReportKind.BALANCE_SHEET: ("bcy_amount", "amount", "total", "balance"),
    ReportKind.CASH_FLOW: ("ending_cash_balance", "closing_balance", "ending_balance", "cash_at_end"),
    ReportKind.INVOICES: ("balance", "balance_due", "bcy_balance"),
    ReportKind.PROFIT_AND_LOSS: ("net_profit", "net_income", "net_profit_amount"),
}

CASH_ACCOUNT_TYPES = frozenset({"cash", "bank"})
OUTSTANDING_STATUSES = frozenset({"sent", "partially_paid", "overdue"})
NET_PROFIT_NAMES = frozenset({"net profit/loss", "net profit", "net income", "net loss"})


# === Field helpers ===


def to_decimal(value: Any) -> Decimal:
    """Parse an amount; anything non-numeric or implausibly large becomes zero."""
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, float) and not math.isfinite(value):
        return ZERO
    if isinstance(value, (int, float, Decimal)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip().replace(",", ""))
        except InvalidOperation:
            return ZERO
    else:
        return ZERO
    if not result.is_finite() or abs(result) >= MAX_AMOUNT:
        return ZERO
    return result


def first_present(record: Any, candidates: tuple[str, ...]) -> Decimal:
    """Amount of the first candidate field present on ``record``."""
    if not isinstance(record, dict):
        return ZERO
    for name in candidates:
        if record.get(name) is not None:
            return to_decimal(record[name])
    return ZERO


def parse_date(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def _records(tree: Any, key: str) -> list[dict[str, Any]]:
    if not isinstance(tree, dict):
        return []
    items = tree.get(key)
    if not isinstance(items, list):
        return []
    return [item for item in items if isinstance(item, dict)]


def _account_type(record: dict[str, Any]) -> str:
    value = record.get("account_type")
    return value.strip().lower() if isinstance(value, str) else ""


def walk(
    node: Any,
    predicate: Callable[[dict[str, Any]], bool],
) -> Iterator[dict[str, Any]]:
    """Depth-first walk yielding every dict matching ``predicate``.

    Lists and dict values are descended at any depth; a matching dict is
    yielded and not descended further.
    """
    stack = [node]
    while stack:
        current = stack.pop()
        if isinstance(current, dict):
            if predicate(current):
                yield current
                continue
            stack.extend(reversed(list(current.values())))
        elif isinstance(current, list):
            stack.extend(reversed(current))


# === Extractors ===


def extract_account_list(tree: Any) -> Decimal:
    """Sum cash and bank balances from the chart of accounts."""
    fields = BALANCE_FIELDS[ReportKind.ACCOUNT_LIST]
    return sum(
        (
            first_present(account, fields)
            for account in _records(tree, "chartofaccounts")
            if _account_type(account) in CASH_ACCOUNT_TYPES
        ),
        ZERO,
    )


def extract_bank_accounts(tree: Any) -> Decimal:
    """Sum balances of active bank and cash accounts."""
    fields = BALANCE_FIELDS[ReportKind.BANK_ACCOUNTS]
    return sum(
        (
            first_present(account, fields)
            for account in _records(tree, "bankaccounts")
            if account.get("is_active", True) is not False
            and _account_type(account) in CASH_ACCOUNT_TYPES
        ),
        ZERO,
    )


def extract_balance_sheet(tree: Any) -> Decimal:
    """Sum every cash or bank account anywhere in the balance sheet tree."""
    fields = BALANCE_FIELDS[ReportKind.BALANCE_SHEET]
    return sum(
        (
            first_present(account, fields)
            for account in walk(tree, lambda node: _account_type(node) in CASH_ACCOUNT_TYPES)
        ),
        ZERO,
    )


def extract_cash_flow(tree: Any) -> Decimal:
    """Read the closing cash balance reported by the cash flow statement.

    Looks at the report root, then its footer, then the final section. The
    closing balance is a single reported figure, not a sum.
    """
    if not isinstance(tree, dict):
        return ZERO
    fields = BALANCE_FIELDS[ReportKind.CASH_FLOW]

    for candidate in (tree, tree.get("footer")):
        if isinstance(candidate, dict) and any(candidate.get(f) is not None for f in fields):
            return first_present(candidate, fields)

    for key in ("cash_flow", "sections"):
        sections = tree.get(key)
        if isinstance(sections, list) and sections:
            return first_present(sections[-1], fields + ("total",))
    return ZERO


def extract_profit_and_loss(tree: Any) -> Decimal:
    """Net profit for the period (negative for a loss)."""
    if not isinstance(tree, dict):
        return ZERO
    fields = BALANCE_FIELDS[ReportKind.PROFIT_AND_LOSS]
    if any(tree.get(f) is not None for f in fields):
        return first_present(tree, fields)

    def is_net_profit(node: dict[str, Any]) -> bool:
        name = node.get("name")
        return isinstance(name, str) and name.strip().lower() in NET_PROFIT_NAMES

    for node in walk(tree, is_net_profit):
        return first_present(node, ("total", "amount"))
    return ZERO


def extract_invoices(tree: Any) -> list[LineItem]:
    """Outstanding invoices (or bills) as line items."""
    records = _records(tree, "invoices") or _records(tree, "bills")
    fields = BALANCE_FIELDS[ReportKind.INVOICES]
    items: list[LineItem] = []
    for record in records:
        status = record.get("status")
        if not isinstance(status, str) or status.lower() not in OUTSTANDING_STATUSES:
            continue
        identifier = record.get("invoice_id") or record.get("bill_id") or ""
        number = record.get("invoice_number") or record.get("bill_number") or identifier
        counterparty = record.get("customer_name") or record.get("vendor_name") or "Unknown"
        items.append(
            LineItem(
                id=str(identifier),
                number=str(number),
                counterparty_name=str(counterparty),
                due_date=parse_date(record.get("due_date")),
                outstanding_amount=first_present(record, fields),
                status=status.lower(),
            )
        )
    return items


TOTAL_EXTRACTORS: dict[ReportKind, Callable[[Any], Decimal]] = {
    ReportKind.ACCOUNT_LIST: extract_account_list,
    ReportKind.BANK_ACCOUNTS: extract_bank_accounts,
    ReportKind.BALANCE_SHEET: extract_balance_sheet,
    ReportKind.CASH_FLOW: extract_cash_flow,
    ReportKind.PROFIT_AND_LOSS: extract_profit_and_loss,
}


def extract_total(tree: Any, kind: ReportKind, entity: Entity) -> MonetaryTotal:
    """Reduce a report tree to one entity's monetary total."""
    extractor = TOTAL_EXTRACTORS.get(kind)
    if extractor is None:
        raise ValueError(f"{kind.value} does not produce a total")
    amount = extractor(tree)
    logger.debug("extracted_total", entity=entity.code, kind=kind.value, amount=str(amount))
    return MonetaryTotal(entity=entity, amount=amount)


def extract(tree: Any, kind: ReportKind, entity: Entity) -> MonetaryTotal | list[LineItem]:
    """Dispatch to the extractor for ``kind``."""
    if kind is ReportKind.INVOICES:
        return extract_invoices(tree)
    return extract_total(tree, kind, entity)
