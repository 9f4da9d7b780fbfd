"""
Investment Reconciliation

Compares the positions reported by an investment platform statement with the
balances recorded for the matching accounts, and prepares the adjustment
transactions that bring each account in line with the statement.

Review table columns:
- Account: Account description
- Current Balance: Balance recorded for the account
- Investment: Name of the statement item matched to the account
- New Balance: Value reported by the statement
- Value: New Balance minus Current Balance (the reconciling delta)
- Percentage: Value relative to Current Balance, in percent
- Matched: Whether a statement item was found for the account

Design Principles:
1. One row per account, in account order, matched or not
2. Undefined figures stay undefined (NaN), never zero
3. Only non-zero deltas become transactions
"""

import calendar
import csv
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Optional

import numpy as np
import pandas as pd

from .models import MatchedInvestmentAccount, TransactionPayload
from .utils import resolve_output_path

logger = logging.getLogger(__name__)

ADJUSTMENT_DESCRIPTION = '-'

# Column order of the review table
required_columns = [
    'Account',
    'Current Balance',
    'Investment',
    'New Balance',
    'Value',
    'Percentage',
    'Matched'
]


@dataclass(frozen=True)
class ReconciliationSummary:
    matched_count: int
    unmatched_count: int
    total_balance_matched: float
    total_investment: float
    total_investment_value: float
    average_percentage: float


def reconciliation_frame(matched_list: List[MatchedInvestmentAccount]) -> pd.DataFrame:
    """Build the review table for a list of matched accounts.

    Args:
        matched_list (list): MatchedInvestmentAccount, one per account

    Returns:
        pd.DataFrame: One row per account with the columns in required_columns
    """
    rows = []
    for item in matched_list:
        rows.append({
            'Account': item.account.description,
            'Current Balance': item.account.balance if item.account.balance is not None else np.nan,
            'Investment': item.investment.name if item.investment else '',
            'New Balance': item.investment.value if item.investment else np.nan,
            'Value': item.investment_value if item.investment_value is not None else np.nan,
            'Percentage': item.investment_percentage if item.investment_percentage is not None else np.nan,
            'Matched': item.matched
        })

    if not rows:
        return pd.DataFrame(columns=required_columns)

    df = pd.DataFrame(rows, columns=required_columns)
    for col in ['Current Balance', 'New Balance', 'Value', 'Percentage']:
        df[col] = pd.to_numeric(df[col], errors='coerce')
    return df


def summarize_reconciliation(matched_list: List[MatchedInvestmentAccount]) -> ReconciliationSummary:
    """
    Compute the totals shown under the review table.

    Args:
        matched_list (list): MatchedInvestmentAccount, one per account

    Returns:
        ReconciliationSummary: Totals for the matched accounts

    Notes:
        - Current balance is summed over matched accounts only
        - The average percentage is taken over the rows that have one, so
          accounts with a zero balance do not pull it towards zero
    """
    df = reconciliation_frame(matched_list)
    matched = df[df['Matched'].astype(bool)] if not df.empty else df

    percentages = df['Percentage'].dropna()
    average_percentage = float(percentages.mean()) if not percentages.empty else 0.0

    return ReconciliationSummary(
        matched_count=len(matched),
        unmatched_count=len(df) - len(matched),
        total_balance_matched=float(matched['Current Balance'].sum()),
        total_investment=float(df['New Balance'].sum()),
        total_investment_value=float(df['Value'].sum()),
        average_percentage=average_percentage,
    )


def default_transaction_date(today: Optional[date] = None) -> date:
    """Date to book statement adjustments on.

    Statements are reconciled around month end: late in the month the
    adjustment goes on the last day of the current month, otherwise on the
    last day of the previous month.
    """
    if today is None:
        today = date.today()

    if today.day > 25:
        last_day = calendar.monthrange(today.year, today.month)[1]
        return today.replace(day=last_day)
    return today.replace(day=1) - timedelta(days=1)


def build_transaction_payloads(matched_list: List[MatchedInvestmentAccount],
                               transaction_date: date) -> List[TransactionPayload]:
    """
    Turn reconciling deltas into transaction creation requests.

    Args:
        matched_list (list): MatchedInvestmentAccount from the review
        transaction_date (date): Booking date for every adjustment

    Returns:
        list: One TransactionPayload per matched account with a non-zero delta
    """
    payloads = []
    for item in matched_list:
        if item.investment is None:
            continue
        if item.investment_value is None or item.investment_value == 0:
            logger.debug(f"No adjustment needed for account {item.account.id}")
            continue

        payloads.append(TransactionPayload(
            transaction_date=transaction_date,
            amount=item.investment_value,
            account_id=item.account.id,
            description=ADJUSTMENT_DESCRIPTION,
            capitalization_event=False,
            transference_between_accounts=False,
        ))

    logger.info(f"Prepared {len(payloads)} adjustment transactions for {transaction_date.isoformat()}")
    return payloads


def save_reconciliation_results(matched_list, output_path):
    """Save the review table to a CSV (or xlsx) file.

    Args:
        matched_list (list): MatchedInvestmentAccount, one per account
        output_path (pathlib.Path): Output path or directory

    Returns:
        pathlib.Path: The file written
    """
    result = reconciliation_frame(matched_list)

    # Use string "True"/"False" (not boolean) to maintain consistent data types
    result['Matched'] = result['Matched'].map(lambda x: "True" if x else "False")

    output_path = resolve_output_path(output_path, "investment_reconciliation.csv")

    if output_path.suffix.lower() == '.xlsx':
        with pd.ExcelWriter(output_path, engine='openpyxl') as writer:
            result.to_excel(writer, sheet_name='Reconciliation', index=False)
    else:
        # Write to CSV with proper quote encapsulation for all fields
        result.to_csv(output_path, index=False, quoting=csv.QUOTE_NONNUMERIC)

    logger.info(f"Saved reconciliation results to {output_path}")
    return output_path


def format_report_summary(summary: ReconciliationSummary) -> str:
    """Format a summary of reconciliation results.

    Args:
        summary (ReconciliationSummary): Totals of a reconciliation

    Returns:
        str: Formatted summary text
    """
    lines = [
        f"Total Accounts: {summary.matched_count + summary.unmatched_count}",
        f"Matched Accounts: {summary.matched_count}",
        f"Unmatched Accounts: {summary.unmatched_count}",
        f"Current Balance (matched): {summary.total_balance_matched:.2f}",
        f"Statement Value: {summary.total_investment:.2f}",
        f"Reconciling Value: {summary.total_investment_value:.2f}",
        f"Average Percentage: {summary.average_percentage:.2f} %"
    ]
    return "\n".join(lines)


def generate_reconciliation_report(matched_list, output_path):
    """Generate a reconciliation report.

    Args:
        matched_list (list): MatchedInvestmentAccount, one per account
        output_path (pathlib.Path): Output path for the report

    Returns:
        pathlib.Path: The report written
    """
    summary = summarize_reconciliation(matched_list)
    report_lines = [format_report_summary(summary)]

    # Add appropriate messages for empty results
    if summary.matched_count == 0:
        report_lines.append("\nNo matched accounts found")
    if summary.unmatched_count == 0:
        report_lines.append("\nNo unmatched accounts found")

    output_path = resolve_output_path(output_path, "reconciliation_report.txt")
    logger.debug(f"Writing reconciliation report to {output_path}")
    with open(output_path, 'w') as f:
        f.write('\n'.join(report_lines))
    return output_path
