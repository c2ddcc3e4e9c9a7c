"""Tests for report extractors."""

from datetime import date
from decimal import Decimal

import pytest

from cfo_bot.extractors import (
    extract,
    extract_account_list,
    extract_balance_sheet,
    extract_bank_accounts,
    extract_cash_flow,
    extract_invoices,
    extract_profit_and_loss,
    first_present,
    to_decimal,
    walk,
)
from cfo_bot.models import LineItem, MonetaryTotal, ReportKind

MALFORMED_TREES = [
    None,
    [],
    "oops",
    42,
    {},
    {"code": 0, "message": "success"},
    {"chartofaccounts": "nope", "bankaccounts": {"a": 1}, "invoices": None},
    {"sections": [None, 1, "x", {"sub_sections": "bad"}]},
    {"cash_flow": [], "footer": "n/a"},
]


class TestFieldHelpers:
    """Tests for amount parsing and candidate lookup."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (1000, Decimal("1000")),
            (12.5, Decimal("12.5")),
            ("1,234.50", Decimal("1234.50")),
            (" 42 ", Decimal("42")),
            ("abc", Decimal("0")),
            ("", Decimal("0")),
            (None, Decimal("0")),
            (True, Decimal("0")),
            (float("nan"), Decimal("0")),
            ("NaN", Decimal("0")),
            ("1e30", Decimal("0")),
            (-10**20, Decimal("0")),
            ({"amount": 1}, Decimal("0")),
        ],
    )
    def test_to_decimal(self, value, expected):
        assert to_decimal(value) == expected

    def test_first_present_uses_priority_order(self):
        record = {"current_balance": 3, "bcy_balance": 2}

        assert first_present(record, ("balance", "bcy_balance", "current_balance")) == 2

    def test_first_present_skips_null_fields(self):
        record = {"balance": None, "account_balance": "7"}

        assert first_present(record, ("balance", "account_balance")) == 7

    def test_first_present_missing_is_zero(self):
        assert first_present({"name": "Petty cash"}, ("balance",)) == 0
        assert first_present("not a dict", ("balance",)) == 0

    def test_walk_finds_matches_at_any_depth(self):
        tree = {"a": [{"b": {"c": [{"hit": 1}]}}], "d": {"hit": 2}}

        hits = list(walk(tree, lambda node: "hit" in node))

        assert sorted(node["hit"] for node in hits) == [1, 2]


class TestAccountList:
    """Tests for the chart-of-accounts extractor."""

    def test_sums_cash_and_bank_only(self):
        tree = {
            "code": 0,
            "chartofaccounts": [
                {"account_name": "Petty Cash", "account_type": "cash", "balance": 100},
                {"account_name": "MUFG", "account_type": "bank", "bcy_balance": "2,500"},
                {"account_name": "Sales", "account_type": "income", "balance": 9999},
                {"account_name": "Mizuho", "account_type": "Bank", "account_balance": 400},
            ],
        }

        assert extract_account_list(tree) == Decimal("3000")

    def test_non_numeric_balance_counts_zero(self):
        tree = {"chartofaccounts": [{"account_type": "bank", "balance": "n/a"}, "junk"]}

        assert extract_account_list(tree) == 0


class TestBankAccounts:
    """Tests for the bank-account extractor."""

    def test_filters_inactive_and_non_bank(self):
        tree = {
            "bankaccounts": [
                {"account_type": "bank", "is_active": True, "bcy_balance": 1500, "balance": 1},
                {"account_type": "bank", "is_active": False, "bcy_balance": 700},
                {"account_type": "credit_card", "is_active": True, "bcy_balance": 300},
                {"account_type": "cash", "balance": 50},
            ]
        }

        assert extract_bank_accounts(tree) == Decimal("1550")


class TestBalanceSheet:
    """Tests for the recursive balance-sheet extractor."""

    def test_nested_bank_account(self):
        tree = {
            "sections": [
                {
                    "name": "Assets",
                    "sub_sections": [
                        {
                            "name": "Current Assets",
                            "sub_sections": [
                                {
                                    "name": "Bank Accounts",
                                    "accounts": [{"account_type": "bank", "bcy_amount": 1000}],
                                }
                            ],
                        }
                    ],
                }
            ]
        }

        assert extract_balance_sheet(tree) == Decimal("1000")

    def test_sums_across_depths_and_ignores_other_types(self):
        tree = {
            "sections": [
                {
                    "name": "Assets",
                    "accounts": [{"account_type": "cash", "bcy_amount": "250.50"}],
                    "sub_sections": [
                        {
                            "sub_sections": [
                                {
                                    "sub_sections": [
                                        {
                                            "accounts": [
                                                {"account_type": "bank", "amount": 1000},
                                                {"account_type": "accounts_receivable", "bcy_amount": 5},
                                            ]
                                        }
                                    ]
                                }
                            ]
                        }
                    ],
                },
                {
                    "name": "Liabilities",
                    "accounts": [{"account_type": "other_current_liability", "bcy_amount": 900}],
                },
            ]
        }

        assert extract_balance_sheet(tree) == Decimal("1250.50")

    def test_missing_path_is_zero(self):
        assert extract_balance_sheet({"sections": [{"name": "Assets"}]}) == 0


class TestCashFlow:
    """Tests for the cash-flow closing balance extractor."""

    def test_root_field(self):
        tree = {"ending_cash_balance": 8000, "cash_flow": [{"total": 1}]}

        assert extract_cash_flow(tree) == Decimal("8000")

    def test_footer_field(self):
        tree = {"footer": {"closing_balance": "12,000"}, "sections": [{"total": 5}]}

        assert extract_cash_flow(tree) == Decimal("12000")

    def test_final_section_total(self):
        tree = {
            "cash_flow": [
                {"name": "Beginning Cash Balance", "total": 100},
                {"name": "Net Change", "total": 50},
                {"name": "Ending Cash Balance", "total": 150},
            ]
        }

        assert extract_cash_flow(tree) == Decimal("150")

    def test_is_not_a_recursive_sum(self):
        tree = {"cash_flow": [{"total": 100}, {"ending_balance": 40, "total": 999}]}

        assert extract_cash_flow(tree) == Decimal("40")

    def test_absent_field_is_zero(self):
        assert extract_cash_flow({"cash_flow": [{"name": "Operating"}]}) == 0


class TestProfitAndLoss:
    """Tests for the net profit extractor."""

    def test_root_field(self):
        assert extract_profit_and_loss({"net_profit": "-1200"}) == Decimal("-1200")

    def test_named_node(self):
        tree = {
            "profit_and_loss": [
                {"name": "Gross Profit", "total": 5000},
                {"name": "Operating Profit", "total": 3000},
                {"name": "Net Profit/Loss", "total": 2500},
            ]
        }

        assert extract_profit_and_loss(tree) == Decimal("2500")


class TestInvoices:
    """Tests for the invoice-list extractor."""

    def test_keeps_outstanding_only(self, mock_invoices_response):
        items = extract_invoices(mock_invoices_response)

        assert [item.number for item in items] == ["INV-0001", "INV-0002"]
        first = items[0]
        assert first == LineItem(
            id="1001",
            number="INV-0001",
            counterparty_name="Acme Trading",
            due_date=date(2024, 1, 1),
            outstanding_amount=Decimal("500"),
            status="sent",
        )
        assert items[1].outstanding_amount == Decimal("1250")

    def test_bad_due_date_becomes_none(self):
        tree = {"invoices": [{"status": "sent", "due_date": "soon", "balance": 10}]}

        (item,) = extract_invoices(tree)

        assert item.due_date is None
        assert item.counterparty_name == "Unknown"

    def test_bills_are_supported(self):
        tree = {
            "bills": [
                {"bill_id": "b1", "bill_number": "BILL-1", "vendor_name": "PLN",
                 "status": "overdue", "due_date": "2024-01-02", "balance": 75},
            ]
        }

        (item,) = extract_invoices(tree)

        assert (item.id, item.number, item.counterparty_name) == ("b1", "BILL-1", "PLN")


class TestDispatch:
    """Tests for the extract() entry point."""

    def test_total_kinds_return_monetary_total(self, kk):
        result = extract({"bankaccounts": [{"account_type": "bank", "balance": 5}]},
                         ReportKind.BANK_ACCOUNTS, kk)

        assert result == MonetaryTotal(entity=kk, amount=Decimal("5"))
        assert result.currency == "¥"

    def test_invoice_kind_returns_line_items(self, kk, mock_invoices_response):
        result = extract(mock_invoices_response, ReportKind.INVOICES, kk)

        assert isinstance(result, list)
        assert len(result) == 2

    @pytest.mark.parametrize("tree", MALFORMED_TREES)
    @pytest.mark.parametrize("kind", list(ReportKind))
    def test_malformed_input_never_raises(self, kind, tree, pt):
        result = extract(tree, kind, pt)

        if kind is ReportKind.INVOICES:
            assert result == []
        else:
            assert result.amount == 0
