"""Tests for aggregation.py - monthly totals and the cross-employee roll-up."""

from datetime import date
from decimal import Decimal
from itertools import permutations

from aggregation import company_total_hours, summarize_all_employees, summarize_employee_month
from entry_index import EntryIndex
from utils import build_month_grid
from conftest import make_entry


class TestSummarizeEmployeeMonth:
    """Tests for summarize_employee_month."""

    def test_alice_february(self, february_entries):
        """8.0h + 6.5h = 14.5h."""
        assert summarize_employee_month(february_entries) == Decimal("14.5")

    def test_empty(self):
        """No entries sum to zero."""
        assert summarize_employee_month([]) == Decimal("0")

    def test_exact_decimal_sum(self):
        """Ten half-hours sum exactly to 5, without float drift."""
        entries = [make_entry(date(2024, 1, d), "0.5") for d in range(1, 11)]
        assert summarize_employee_month(entries) == Decimal("5.0")

    def test_order_independent(self, march_entries):
        """Any ordering of the same entries gives the same total."""
        alice = [e for e in march_entries if e.employee_id == "alice"]
        totals = {summarize_employee_month(list(p)) for p in permutations(alice)}
        assert totals == {Decimal("20")}

    def test_matches_calendar_grid(self, february_entries):
        """The total equals the hours of grid cells with a bound entry."""
        index = EntryIndex(february_entries)
        cells = build_month_grid(2024, 2, today=date(2024, 3, 1), lookup=index.lookup_for("alice"))
        grid_total = sum((c.entry.hours_worked for c in cells if c.entry), Decimal("0"))
        assert summarize_employee_month(february_entries) == grid_total


class TestSummarizeAllEmployees:
    """Tests for summarize_all_employees."""

    def test_march_scenario(self, march_entries):
        """Alice (20h over 3 days) comes before Bob (15h over 2 days)."""
        summaries = summarize_all_employees(march_entries, 3, 2024)

        assert [s.employee_name for s in summaries] == ["Alice", "Bob"]
        alice, bob = summaries
        assert alice.total_hours == Decimal("20")
        assert alice.day_count == 3
        assert alice.average_hours == Decimal("6.67")
        assert bob.total_hours == Decimal("15")
        assert bob.day_count == 2
        assert bob.average_hours == Decimal("7.50")
        assert (alice.month, alice.year) == (3, 2024)

    def test_entries_sorted_by_date(self, march_entries):
        """Each summary lists its entries in date order."""
        for summary in summarize_all_employees(reversed(march_entries), 3, 2024):
            dates = [e.date for e in summary.entries]
            assert dates == sorted(dates)

    def test_sorted_by_name_case_sensitive(self):
        """Names sort lexically with uppercase before lowercase."""
        entries = [
            make_entry(date(2024, 3, 1), employee_id="z1", employee_name="alice"),
            make_entry(date(2024, 3, 1), employee_id="z2", employee_name="Bob"),
            make_entry(date(2024, 3, 1), employee_id="z3", employee_name="Alice"),
        ]
        names = [s.employee_name for s in summarize_all_employees(entries, 3, 2024)]
        assert names == ["Alice", "Bob", "alice"]

    def test_name_ties_broken_by_id(self):
        """Employees sharing a name are ordered by id."""
        entries = [
            make_entry(date(2024, 3, 1), employee_id="e2", employee_name="Sam"),
            make_entry(date(2024, 3, 1), employee_id="e1", employee_name="Sam"),
        ]
        ids = [s.employee_id for s in summarize_all_employees(entries, 3, 2024)]
        assert ids == ["e1", "e2"]

    def test_input_order_does_not_matter(self, march_entries):
        """Shuffled input gives identical summaries."""
        forward = summarize_all_employees(list(march_entries), 3, 2024)
        backward = summarize_all_employees(list(reversed(march_entries)), 3, 2024)
        assert [(s.employee_id, s.total_hours, [e.id for e in s.entries]) for s in forward] == \
            [(s.employee_id, s.total_hours, [e.id for e in s.entries]) for s in backward]

    def test_no_entries(self):
        """No entries produce no summaries."""
        assert summarize_all_employees([], 3, 2024) == []

    def test_company_total(self, march_entries):
        """The company total sums every employee."""
        assert company_total_hours(summarize_all_employees(march_entries, 3, 2024)) == Decimal("35")
