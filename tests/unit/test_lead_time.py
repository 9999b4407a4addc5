"""
Unit tests for lead-time parsing and expected-arrival arithmetic.
"""
import pytest

from tracking.lead_time import (
    LEAD_TIME_MATCHERS,
    calculate_expected_arrival,
    parse_iso_date,
    parse_lead_time_to_days,
)


@pytest.mark.unit
class TestParseLeadTime:
    """Tests for parse_lead_time_to_days."""

    @pytest.mark.parametrize("text, expected", [
        ("14 days", 14),
        ("1 day", 1),
        ("7d", 7),
        ("2-3 days", 2),
        ("2 weeks", 14),
        ("3weeks", 21),
        ("4 w", 28),
        ("2-3 weeks", 14),
        ("1 month", 30),
        ("3months", 90),
        ("1-2 months", 30),
        ("14", 14),
    ])
    def test_units_and_ranges(self, text, expected):
        """Test day, week and month units; ranges take the first number."""
        assert parse_lead_time_to_days(text) == expected

    def test_case_and_whitespace_ignored(self):
        """Test input is lower-cased and trimmed before matching."""
        assert parse_lead_time_to_days("  2 WEEKS ") == 14
        assert parse_lead_time_to_days("1 Month") == 30

    def test_working_days_caught_by_week_abbreviation(self):
        """Test '10 working days' matches the 'w' abbreviation and yields 70."""
        assert parse_lead_time_to_days("10 working days") == 70

    def test_leading_integer_fallback(self):
        """Test qualifiers without a recognised unit fall back to the leading integer."""
        assert parse_lead_time_to_days("5 business days") == 5
        assert parse_lead_time_to_days("14 calendar days") == 14
        assert parse_lead_time_to_days("2-3 business days") == 2

    def test_unit_found_anywhere_in_text(self):
        """Test patterns are searched, not anchored."""
        assert parse_lead_time_to_days("approx. 6 weeks ex works") == 42

    @pytest.mark.parametrize("text", [None, "", "   ", "ASAP", "in stock", "TBD"])
    def test_unparseable_returns_zero(self, text):
        """Test garbage never raises and yields 0."""
        assert parse_lead_time_to_days(text) == 0

    @pytest.mark.parametrize("n", [0, 1, 7, 30, 365])
    def test_canonical_days_format(self, n):
        """Test "<n> days" always parses back to n."""
        assert parse_lead_time_to_days(f"{n} days") == n

    def test_non_string_returns_zero(self):
        """Test non-string input is treated as unknown."""
        assert parse_lead_time_to_days(14) == 0

    def test_result_is_never_negative(self):
        """Test a leading minus sign is ignored rather than producing a negative count."""
        assert parse_lead_time_to_days("-5 days") >= 0

    def test_matcher_precedence(self):
        """Test the matcher order is days, then weeks, then months."""
        assert [name for name, _, _ in LEAD_TIME_MATCHERS] == ["days", "weeks", "months"]
        assert [mult for _, _, mult in LEAD_TIME_MATCHERS] == [1, 7, 30]


@pytest.mark.unit
class TestExpectedArrival:
    """Tests for calculate_expected_arrival."""

    def test_simple_addition(self):
        """Test adding days within a month."""
        assert calculate_expected_arrival("2025-11-01", 14) == "2025-11-15"

    def test_zero_days_returns_order_date(self):
        """Test a zero lead time returns the order date itself."""
        assert calculate_expected_arrival("2025-11-28", 0) == "2025-11-28"

    def test_month_rollover(self):
        """Test arithmetic across a month boundary."""
        assert calculate_expected_arrival("2025-01-28", 7) == "2025-02-04"

    def test_year_rollover(self):
        """Test arithmetic across a year boundary."""
        assert calculate_expected_arrival("2025-12-25", 14) == "2026-01-08"

    def test_leap_year(self):
        """Test February 29th is produced in a leap year."""
        assert calculate_expected_arrival("2024-02-28", 1) == "2024-02-29"
        assert calculate_expected_arrival("2025-02-28", 1) == "2025-03-01"

    def test_composes_with_parser(self):
        """Test parsed lead times feed straight into the calculator."""
        days = parse_lead_time_to_days("2-3 weeks")
        assert calculate_expected_arrival("2025-11-01", days) == "2025-11-15"

    @pytest.mark.parametrize("order_date, days, expected", [
        ("2024-02-25", 5, "2024-03-01"),
        ("2025-02-25", 5, "2025-03-02"),
    ])
    def test_february_boundaries(self, order_date, days, expected):
        assert calculate_expected_arrival(order_date, days) == expected

    def test_invalid_order_date_raises(self):
        """Test an unparseable order date is a ValueError."""
        with pytest.raises(ValueError):
            calculate_expected_arrival("not-a-date", 7)


@pytest.mark.unit
class TestParseIsoDate:
    """Tests for parse_iso_date."""

    def test_date_only(self):
        assert parse_iso_date("2025-11-28").isoformat() == "2025-11-28"

    def test_datetime_string_truncated(self):
        """Test a full timestamp is reduced to its date part."""
        assert parse_iso_date("2025-11-28T23:59:00Z").isoformat() == "2025-11-28"

    @pytest.mark.parametrize("value", [None, "", "28/11/2025", "soon"])
    def test_unusable_values(self, value):
        assert parse_iso_date(value) is None
