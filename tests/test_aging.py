"""Tests for the invoice aging classifier."""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from cfo_bot.aging import bucket_for, classify
from cfo_bot.extractors import extract_invoices
from cfo_bot.models import AgingBucket, LineItem

REFERENCE = date(2024, 1, 10)


def _item(number: str, due: date | None, amount: str) -> LineItem:
    return LineItem(
        id=number,
        number=number,
        counterparty_name=f"Customer {number}",
        due_date=due,
        outstanding_amount=Decimal(amount),
        status="sent",
    )


class TestBucketFor:
    """Tests for the per-invoice bucket rule."""

    @pytest.mark.parametrize(
        ("due", "expected"),
        [
            (REFERENCE, AgingBucket.DUE_TODAY),
            (REFERENCE + timedelta(days=1), AgingBucket.DUE_WITHIN_7_DAYS),
            (REFERENCE + timedelta(days=7), AgingBucket.DUE_WITHIN_7_DAYS),
            (REFERENCE + timedelta(days=8), AgingBucket.OTHER_OUTSTANDING),
            (REFERENCE - timedelta(days=1), AgingBucket.OVERDUE),
            (None, AgingBucket.OTHER_OUTSTANDING),
        ],
    )
    def test_boundaries(self, due, expected):
        assert bucket_for(due, REFERENCE) is expected


class TestClassify:
    """Tests for classify()."""

    def test_single_overdue_invoice(self):
        tree = {"invoices": [{"status": "sent", "due_date": "2024-01-01", "balance": 500}]}

        summary = classify(extract_invoices(tree), REFERENCE)

        assert summary.overdue_total == Decimal("500")
        assert len(summary.overdue_detail) == 1
        assert summary.outstanding_total == Decimal("500")
        assert summary.due_today_total == 0
        assert summary.due_within_7_total == 0

    def test_mixed_buckets(self):
        items = [
            _item("A", REFERENCE, "100"),
            _item("B", REFERENCE + timedelta(days=3), "200"),
            _item("C", REFERENCE - timedelta(days=2), "300"),
            _item("D", REFERENCE - timedelta(days=30), "400"),
            _item("E", REFERENCE + timedelta(days=20), "500"),
            _item("F", None, "600"),
        ]

        summary = classify(items, REFERENCE)

        assert summary.due_today_total == Decimal("100")
        assert summary.due_within_7_total == Decimal("200")
        assert summary.overdue_total == Decimal("700")
        assert summary.other_total == Decimal("1100")
        assert summary.outstanding_total == Decimal("2100")
        # Oldest overdue first
        assert [item.number for item in summary.overdue_detail] == ["D", "C"]
        buckets = {item.number: bucket for item, bucket in summary.classified}
        assert buckets["A"] is AgingBucket.DUE_TODAY
        assert buckets["F"] is AgingBucket.OTHER_OUTSTANDING

    @pytest.mark.parametrize("offset", range(-10, 12, 3))
    def test_buckets_partition_outstanding_total(self, offset):
        reference = REFERENCE + timedelta(days=offset)
        items = [
            _item(str(n), REFERENCE + timedelta(days=n - 10), str(n * 10))
            for n in range(25)
        ] + [_item("none", None, "1")]

        summary = classify(items, reference)

        assert [item for item, _ in summary.classified] == items
        assert sum(summary.bucket_totals.values()) == summary.outstanding_total
        assert summary.outstanding_total == sum(item.outstanding_amount for item in items)

    def test_duplicate_ids_each_classified(self):
        items = [
            _item("", due, "50")
            for due in (REFERENCE, REFERENCE - timedelta(days=1), None)
        ]

        summary = classify(items, REFERENCE)

        assert [bucket for _, bucket in summary.classified] == [
            AgingBucket.DUE_TODAY,
            AgingBucket.OVERDUE,
            AgingBucket.OTHER_OUTSTANDING,
        ]
        assert summary.outstanding_total == Decimal("150")

    def test_empty_list(self):
        summary = classify([], REFERENCE)

        assert summary.outstanding_total == 0
        assert summary.overdue_detail == []
