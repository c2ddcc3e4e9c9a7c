"""Bucket outstanding invoices by due-date proximity."""

from collections.abc import Iterable
from datetime import date, timedelta

from cfo_bot.models import AgingBucket, AgingSummary, LineItem

DUE_SOON_DAYS = 7


def bucket_for(due_date: date | None, reference_date: date) -> AgingBucket:
    """Classify a due date at calendar-day granularity."""
    if due_date is None:
        return AgingBucket.OTHER_OUTSTANDING
    if due_date == reference_date:
        return AgingBucket.DUE_TODAY
    if due_date < reference_date:
        return AgingBucket.OVERDUE
    if due_date <= reference_date + timedelta(days=DUE_SOON_DAYS):
        return AgingBucket.DUE_WITHIN_7_DAYS
    return AgingBucket.OTHER_OUTSTANDING


def classify(invoices: Iterable[LineItem], reference_date: date) -> AgingSummary:
    """Partition outstanding invoices into aging buckets.

    Every invoice lands in exactly one bucket, and ``outstanding_total`` is
    the sum over all of them.
    """
    summary = AgingSummary(reference_date=reference_date)
    for item in invoices:
        bucket = bucket_for(item.due_date, reference_date)
        amount = item.outstanding_amount
        summary.outstanding_total += amount
        summary.classified.append((item, bucket))

        if bucket is AgingBucket.DUE_TODAY:
            summary.due_today_total += amount
        elif bucket is AgingBucket.DUE_WITHIN_7_DAYS:
            summary.due_within_7_total += amount
        elif bucket is AgingBucket.OVERDUE:
            summary.overdue_total += amount
            summary.overdue_detail.append(item)
        else:
            summary.other_total += amount

    # Oldest first
    summary.overdue_detail.sort(key=lambda item: item.due_date or reference_date)
    return summary
