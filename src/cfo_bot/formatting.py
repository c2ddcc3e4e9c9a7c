"""Render per-entity results as chat replies."""

from collections.abc import Callable, Mapping, Sequence
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import TypeVar

import structlog

from cfo_bot.config import Entity
from cfo_bot.models import AgingSummary, LineItem, MonetaryTotal

logger = structlog.get_logger(__name__)

T = TypeVar("T")

NOT_AVAILABLE = "not available"


def format_amount(amount: Decimal, entity: Entity) -> str:
    """Currency-prefixed amount with the entity's digit grouping.

    1234567 renders as ``¥1,234,567`` for KK and ``Rp 1.234.567`` for PT.
    """
    quantum = Decimal(1).scaleb(-entity.decimal_places)
    rounded = amount.quantize(quantum, rounding=ROUND_HALF_UP)
    sign = "-" if rounded < 0 else ""
    grouped = f"{abs(rounded):,.{entity.decimal_places}f}"
    if entity.thousands_separator != ",":
        # Swap grouping and decimal marks (1,234.50 -> 1.234,50)
        grouped = grouped.translate(
            str.maketrans({",": entity.thousands_separator, ".": ","})
        )
    return f"{sign}{entity.currency_symbol}{grouped}"


def _render_entities(
    title: str,
    results: Mapping[str, T | None],
    entities: Sequence[Entity],
    render: Callable[[T, Entity], list[str]],
) -> str:
    """Title plus each entity's lines, in configuration order.

    An entity with no result, or whose amounts cannot be rendered, gets a
    single not available line; the other entities are unaffected.
    """
    lines = [title]
    for entity in entities:
        result = results.get(entity.code)
        unavailable = [f"{entity.code}: {NOT_AVAILABLE}"]
        if result is None:
            lines.extend(unavailable)
            continue
        try:
            lines.extend(render(result, entity))
        except (InvalidOperation, OverflowError, ValueError):
            logger.warning("entity_render_failed", entity=entity.code)
            lines.extend(unavailable)
    return "\n".join(lines)


def aggregate(
    title: str,
    results: Mapping[str, MonetaryTotal | None],
    entities: Sequence[Entity],
) -> str:
    """One line per configured entity, in configuration order.

    Entities with no result are listed as not available rather than omitted.
    """

    def render(total: MonetaryTotal, entity: Entity) -> list[str]:
        return [f"{entity.code}: {format_amount(total.amount, entity)}"]

    return _render_entities(title, results, entities, render)


def format_line_item(item: LineItem, entity: Entity) -> str:
    due = item.due_date.isoformat() if item.due_date else "no due date"
    return (
        f"{item.counterparty_name} | {item.number} | {due} | "
        f"{format_amount(item.outstanding_amount, entity)}"
    )


def format_invoice_report(
    results: Mapping[str, AgingSummary | None],
    entities: Sequence[Entity],
    reference_date: date,
) -> str:
    """Aging totals per entity, followed by its overdue invoices."""

    def render(summary: AgingSummary, entity: Entity) -> list[str]:
        return [
            f"{entity.code}: {format_amount(summary.outstanding_total, entity)} outstanding",
            f"  Due today: {format_amount(summary.due_today_total, entity)}",
            f"  Due within 7 days: {format_amount(summary.due_within_7_total, entity)}",
            f"  Overdue: {format_amount(summary.overdue_total, entity)}",
            *(f"  {format_line_item(item, entity)}" for item in summary.overdue_detail),
        ]

    title = f"🧾 Outstanding invoices (as of {reference_date.isoformat()})"
    return _render_entities(title, results, entities, render)


def format_overdue_report(
    results: Mapping[str, AgingSummary | None],
    entities: Sequence[Entity],
    reference_date: date,
) -> str:
    """Overdue invoices per entity, one line per invoice."""

    def render(summary: AgingSummary, entity: Entity) -> list[str]:
        count = len(summary.overdue_detail)
        return [
            f"{entity.code}: {format_amount(summary.overdue_total, entity)} "
            f"across {count} invoice{'s' if count != 1 else ''}",
            *(f"  {format_line_item(item, entity)}" for item in summary.overdue_detail),
        ]

    title = f"⏰ Overdue invoices (as of {reference_date.isoformat()})"
    return _render_entities(title, results, entities, render)
