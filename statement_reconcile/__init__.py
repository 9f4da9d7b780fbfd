"""
Statement Reconcile - reconcile investment statements with bank account balances.

This package provides functionality to:
- Parse locale formatted numbers ("1.234,56") from statements and user input
- Extract investment positions from statement text pasted from an investment platform
- Match each account to its closest statement item by fuzzy description matching
- Compute reconciling deltas and create the adjustment transactions
- Filter transactions with free text (date, amount or description)
- Drive the parse-then-commit import of transaction files

The review table includes:
- Account: Account description
- Current Balance: Balance recorded for the account
- Investment: Matched statement item
- New Balance: Value reported by the statement
- Value: Reconciling delta (New Balance - Current Balance)
- Percentage: Delta relative to the current balance
"""

from .parsing import parse_locale_number
from .statement import extract_investment_items
from .matching import FuzzyMatcher, RapidFuzzMatcher, match_investments_to_accounts
from .reconcile import (
    build_transaction_payloads,
    summarize_reconciliation,
    reconciliation_frame,
    generate_reconciliation_report
)
from .filters import filter_transactions
from .workflow import UploadSession, InvestmentReconciliation

__all__ = [
    'parse_locale_number',
    'extract_investment_items',
    'FuzzyMatcher',
    'RapidFuzzMatcher',
    'match_investments_to_accounts',
    'build_transaction_payloads',
    'summarize_reconciliation',
    'reconciliation_frame',
    'generate_reconciliation_report',
    'filter_transactions',
    'UploadSession',
    'InvestmentReconciliation'
]
