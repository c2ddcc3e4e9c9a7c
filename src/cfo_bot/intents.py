"""Turn a chat message into an enumerated intent, matched once at the boundary."""

import re
from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from cfo_bot.dates import parse_reference_date


class Intent(str, Enum):
    """Questions the bot can answer."""

    CASH_BALANCE = "cash_balance"
    INVOICES = "invoices"
    OVERDUE_INVOICES = "overdue_invoices"
    PROFIT_AND_LOSS = "profit_and_loss"

    @property
    def label(self) -> str:
        return INTENT_LABELS[self]


INTENT_LABELS: dict[Intent, str] = {
    Intent.CASH_BALANCE: "cash balance",
    Intent.INVOICES: "invoices",
    Intent.OVERDUE_INVOICES: "overdue invoices",
    Intent.PROFIT_AND_LOSS: "profit and loss",
}

# Checked in order; overdue must win over the plain invoice pattern
INTENT_PATTERNS: tuple[tuple[Intent, re.Pattern[str]], ...] = (
    (Intent.OVERDUE_INVOICES, re.compile(r"\boverdue\b", re.I)),
    (Intent.INVOICES, re.compile(r"\binvoices?\b|\breceivables?\b|\bunpaid\b", re.I)),
    (
        Intent.PROFIT_AND_LOSS,
        re.compile(r"\bp\s*&\s*l\b|\bpnl\b|\bprofit\b|\bloss\b|\bnet income\b", re.I),
    ),
    (Intent.CASH_BALANCE, re.compile(r"\bcash\b|\bbalance\b|\bbank\b", re.I)),
)

ENTITY_PATTERN = re.compile(r"\b(kk|pt)\b", re.I)


@dataclass(frozen=True)
class Query:
    """A recognised question with its optional qualifiers."""

    intent: Intent
    entity_codes: tuple[str, ...] = field(default_factory=tuple)
    reference_date: date | None = None
    text: str = ""


def match_intent(text: str) -> Intent | None:
    for intent, pattern in INTENT_PATTERNS:
        if pattern.search(text):
            return intent
    return None


def parse_query(text: str, today: date | None = None) -> Query | None:
    """Recognise the intent, entity keywords and date expression in ``text``.

    Returns None when the message is not a finance question. An empty
    ``entity_codes`` means all entities.
    """
    if not text:
        return None
    intent = match_intent(text)
    if intent is None:
        return None

    codes: list[str] = []
    for match in ENTITY_PATTERN.finditer(text):
        code = match.group(1).upper()
        if code not in codes:
            codes.append(code)

    return Query(
        intent=intent,
        entity_codes=tuple(codes),
        reference_date=parse_reference_date(text, today),
        text=text,
    )
