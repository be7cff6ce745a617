"""
Unit tests for trade-report normalization.

Tests:
- All accepted document shapes
- Percentage key variants and string values
- Skipping of unusable reports
"""

import json
from datetime import date
from decimal import Decimal

import pytest

from app.services.trade_feed import ProfitEntry, normalize_payload


REPORTS = [
    {"date": "2025-09-01", "dailyProfit": 2.5},
    {"date": "2025-09-02T00:00:00Z", "dailyProfit": "-0.75"},
]

EXPECTED = [
    ProfitEntry(date(2025, 9, 1), Decimal("2.5")),
    ProfitEntry(date(2025, 9, 2), Decimal("-0.75")),
]


class TestDocumentShapes:
    """Test the three known document layouts."""

    @pytest.mark.parametrize(
        "payload",
        [
            {"data": {"dailyReports": REPORTS}},
            {"result": {"data": {"dailyReports": REPORTS}}},
            {"dailyReports": REPORTS},
        ],
        ids=["data", "result-data", "top-level"],
    )
    def test_shapes(self, payload):
        assert normalize_payload(payload) == EXPECTED

    def test_json_string_payload(self):
        """Documents stored as text are decoded first."""
        payload = json.dumps({"data": {"dailyReports": REPORTS}})
        assert normalize_payload(payload) == EXPECTED

    def test_float_goes_through_str(self):
        """2.5 becomes Decimal('2.5'), not its binary expansion."""
        entries = normalize_payload({"dailyReports": [{"date": "2025-09-01", "dailyProfit": 0.1}]})
        assert entries[0].percent == Decimal("0.1")

    @pytest.mark.parametrize(
        "payload",
        [{}, {"data": {}}, {"dailyReports": "nope"}, [1, 2, 3]],
    )
    def test_unknown_shape_raises(self, payload):
        with pytest.raises(ValueError):
            normalize_payload(payload)


class TestReportEntries:
    """Test individual report handling."""

    @pytest.mark.parametrize(
        "key", ["dailyProfit", "dailyProfitPercent", "profitPercent"]
    )
    def test_percent_key_variants(self, key):
        entries = normalize_payload({"dailyReports": [{"date": "2025-09-01", key: "1.2"}]})
        assert entries == [ProfitEntry(date(2025, 9, 1), Decimal("1.2"))]

    def test_unusable_reports_are_skipped(self):
        """Missing date, missing percent or garbage values are dropped."""
        payload = {
            "dailyReports": [
                {"dailyProfit": 1},
                {"date": "2025-09-01"},
                {"date": "not-a-date", "dailyProfit": 1},
                {"date": "2025-09-01", "dailyProfit": "abc"},
                "garbage",
                {"date": "2025-09-03", "profitPercent": 3},
            ]
        }

        assert normalize_payload(payload) == [
            ProfitEntry(date(2025, 9, 3), Decimal("3"))
        ]

    @pytest.mark.parametrize(
        "value",
        ["NaN", "Infinity", "-Infinity", "sNaN", float("nan"), float("inf")],
    )
    def test_non_finite_percent_is_skipped(self, value):
        """NaN and infinite percentages never reach the engines."""
        payload = {
            "dailyReports": [
                {"date": "2025-09-01", "dailyProfit": value},
                {"date": "2025-09-01", "dailyProfit": "2.5"},
            ]
        }

        assert normalize_payload(payload) == [
            ProfitEntry(date(2025, 9, 1), Decimal("2.5"))
        ]

    def test_json_nan_literal_is_skipped(self):
        """json.loads turns the bare NaN token into float('nan')."""
        payload = '{"dailyReports": [{"date": "2025-09-01", "dailyProfit": NaN}]}'

        assert normalize_payload(payload) == []
