"""
Interest Accrual Conformance Tests

INVARIANT: For an open loan (principal P, opened at t0) at time t:

    periods(t) = floor((t - t0) / PERIOD_LENGTH)
    due(t)     = P + periods(t) * P * rate

Consequences checked here:
- due is a step function: constant inside a period, jumps at boundaries
- due never decreases as time moves forward
- due is exactly P before the first full period
- truncation to token precision happens per period and never increases what is owed
"""

from hypothesis import given, settings
from hypothesis import strategies as st
from decimal import Decimal

from lending import (
    LoanOpen, LendingTerms, calculate_repayment, calculate_interest,
    INTEREST_RATE, PERIOD_LENGTH,
)


principals = st.decimals(
    min_value=Decimal("0.01"),
    max_value=Decimal("1000000"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)
opened_times = st.integers(min_value=0, max_value=10**10)
elapsed = st.integers(min_value=0, max_value=100 * PERIOD_LENGTH)


class TestAccrualProperties:
    """Property-based accrual tests."""

    @given(principals, opened_times, elapsed)
    @settings(max_examples=200)
    def test_due_matches_closed_form(self, principal, opened_at, dt):
        """
        PROPERTY: due = P + floor(dt / L) * P * rate
        """
        loan = LoanOpen(principal, opened_at)
        quote = calculate_repayment(loan, opened_at + dt, LendingTerms())
        periods = dt // PERIOD_LENGTH
        assert quote.periods_elapsed == periods
        assert quote.total_due == principal + periods * principal * INTEREST_RATE

    @given(principals, opened_times, elapsed, elapsed)
    @settings(max_examples=200)
    def test_due_is_monotonic(self, principal, opened_at, dt1, dt2):
        """
        PROPERTY: t1 <= t2 implies due(t1) <= due(t2)
        """
        early, late = sorted((dt1, dt2))
        loan = LoanOpen(principal, opened_at)
        terms = LendingTerms()
        assert (
            calculate_repayment(loan, opened_at + early, terms).total_due
            <= calculate_repayment(loan, opened_at + late, terms).total_due
        )

    @given(principals, opened_times, st.integers(min_value=0, max_value=PERIOD_LENGTH - 1))
    @settings(max_examples=100)
    def test_no_interest_before_first_period(self, principal, opened_at, dt):
        """
        PROPERTY: dt < L implies due = P
        """
        loan = LoanOpen(principal, opened_at)
        assert calculate_repayment(loan, opened_at + dt, LendingTerms()).total_due == principal

    @given(principals, st.integers(min_value=0, max_value=99), st.integers(min_value=0, max_value=PERIOD_LENGTH - 1))
    @settings(max_examples=100)
    def test_constant_within_a_period(self, principal, n, offset):
        """
        PROPERTY: due is the same anywhere inside period n.
        """
        loan = LoanOpen(principal, 0)
        terms = LendingTerms()
        start = calculate_repayment(loan, n * PERIOD_LENGTH, terms).total_due
        inside = calculate_repayment(loan, n * PERIOD_LENGTH + offset, terms).total_due
        assert start == inside

    @given(principals, st.integers(min_value=0, max_value=1000), st.integers(min_value=0, max_value=18))
    @settings(max_examples=200)
    def test_truncation_never_rounds_up(self, principal, periods, places):
        """
        PROPERTY: interest = periods * trunc(P * rate), so
          truncated <= exact < truncated + max(periods, 1) * 10^-places
        """
        unit = Decimal(10) ** -places
        per_period = calculate_interest(principal, 1, INTEREST_RATE, decimal_places=places)
        exact = calculate_interest(principal, periods, INTEREST_RATE)
        truncated = calculate_interest(principal, periods, INTEREST_RATE, decimal_places=places)
        assert truncated == periods * per_period
        assert truncated <= exact
        assert exact - truncated < max(periods, 1) * unit
