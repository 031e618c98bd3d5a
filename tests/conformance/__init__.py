"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the lending ledger.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. conservation.py - Tokens are never created or destroyed by lending
2. atomicity.py - All-or-nothing borrow/repay, serialized per pool
3. accrual.py - Whole-period simple interest

These tests use hypothesis for property-based testing.
"""
