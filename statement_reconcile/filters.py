"""
Free text transaction search.

A single search box filters the transaction list. What the user typed is
read, in order, as a date (dd/mm/yyyy), an amount, or a piece of the
description. The first reading that works decides the filter, so a
description that looks like a number can only be found by its amount.
"""

import logging
import re
from datetime import datetime
from typing import List

from .models import Transaction
from .parsing import parse_float_prefix

logger = logging.getLogger(__name__)

DATE_FILTER_FORMAT = '%d/%m/%Y'

_WHITESPACE = re.compile(r'\s+')


def parse_filter_date(query):
    """Return the date typed as dd/mm/yyyy, or None."""
    try:
        return datetime.strptime(query, DATE_FILTER_FORMAT).date()
    except (ValueError, TypeError):
        return None


def parse_filter_amount(query):
    """Return the amount typed with pt_BR separators ("1.234,56"), or None."""
    return parse_float_prefix(query.replace('.', '', 1).replace(',', '.', 1))


def normalize_description(text):
    return _WHITESPACE.sub(' ', text.lower()).strip()


def filter_transactions(query: str, transactions: List[Transaction]) -> List[Transaction]:
    """
    Filter transactions with free text.

    Args:
        query (str): Text typed by the user
        transactions (list): Transactions to filter

    Returns:
        list: Matching transactions, in their original order

    Notes:
        - Dates match on the calendar day only
        - Amounts match exactly
        - Descriptions match case-insensitively with repeated spaces collapsed;
          transactions without a description never match
    """
    filter_date = parse_filter_date(query)
    if filter_date is not None:
        logger.debug(f"Filtering by date {filter_date.isoformat()}")
        return [t for t in transactions if t.transaction_date.date() == filter_date]

    filter_amount = parse_filter_amount(query)
    if filter_amount is not None:
        logger.debug(f"Filtering by amount {filter_amount}")
        return [t for t in transactions if t.amount == filter_amount]

    pattern = normalize_description(query)
    logger.debug(f"Filtering by description {pattern!r}")
    return [
        t for t in transactions
        if t.description and pattern in normalize_description(t.description)
    ]
