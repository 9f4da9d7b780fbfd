"""
Data model for statement reconciliation.

Accounts and transactions belong to the bank account API and are built from
its JSON (camelCase keys). Investment items, matches and upload results only
live for the duration of a review session.
"""

import enum
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


def parse_api_datetime(value):
    """Convert an API date value to a datetime, keeping None as None."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    try:
        return pd.to_datetime(value).to_pydatetime()
    except (ValueError, TypeError) as e:
        raise ValueError(f"Invalid date value: {value!r}") from e


def format_api_datetime(value):
    if isinstance(value, datetime):
        return value.isoformat()
    return datetime(value.year, value.month, value.day).isoformat()


def is_numeric(value):
    """True for finite int/float values (booleans excluded)."""
    if isinstance(value, bool) or not isinstance(value, (int, float, np.number)):
        return False
    return bool(np.isfinite(value))


@dataclass(frozen=True)
class InvestmentItem:
    """One line recognised in a pasted investment statement."""
    name: str
    value: float


@dataclass
class Account:
    id: int
    account_number: str
    account_holder: str
    description: str
    balance: Optional[float]
    is_active: bool = True
    last_transaction_date: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> 'Account':
        return cls(
            id=data['id'],
            account_number=data.get('accountNumber', ''),
            account_holder=data.get('accountHolder', ''),
            description=data.get('description') or '',
            balance=data.get('balance'),
            is_active=data.get('isActive', True),
            last_transaction_date=parse_api_datetime(data.get('lastTransactionDate')),
            created_at=parse_api_datetime(data.get('createdAt')),
        )


@dataclass(frozen=True)
class MatchedInvestmentAccount:
    """
    An account paired with, at most, one statement item.

    The reconciling figures are derived on construction:

    - investment_value: statement value minus the account balance, set only
      when there is an investment and the balance is numeric
    - investment_percentage: investment_value relative to the balance, in
      percent, omitted when the balance is zero
    """
    account: Account
    investment: Optional[InvestmentItem] = None
    investment_value: Optional[float] = field(default=None, init=False)
    investment_percentage: Optional[float] = field(default=None, init=False)

    def __post_init__(self):
        if self.investment is None or not is_numeric(self.account.balance):
            return
        if not is_numeric(self.investment.value):
            return

        balance = float(self.account.balance)
        value = self.investment.value - balance
        object.__setattr__(self, 'investment_value', value)
        if balance != 0:
            object.__setattr__(self, 'investment_percentage', (value / balance) * 100)

    @property
    def matched(self):
        return self.investment is not None


@dataclass
class Transaction:
    id: int
    amount: float
    transaction_date: datetime
    account_id: int
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    balance_at_before_transaction: Optional[float] = None
    capitalization_event: bool = False
    transference_between_accounts: bool = False
    transaction_type_id: Optional[int] = None

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> 'Transaction':
        return cls(
            id=data['id'],
            amount=data['amount'],
            transaction_date=parse_api_datetime(data['transactionDate']),
            account_id=data['accountId'],
            description=data.get('description'),
            created_at=parse_api_datetime(data.get('createdAt')),
            balance_at_before_transaction=data.get('balanceAtBeforeTransaction'),
            capitalization_event=data.get('capitalizationEvent', False),
            transference_between_accounts=data.get('transferenceBetweenAccounts', False),
            transaction_type_id=data.get('transactionTypeId'),
        )


@dataclass
class TransactionPayload:
    """Creation (or update, when id is set) request for one transaction."""
    transaction_date: date
    amount: float
    account_id: int
    description: str = '-'
    capitalization_event: bool = False
    transference_between_accounts: bool = False
    transaction_type_id: Optional[int] = None
    id: Optional[int] = None

    def to_json(self) -> Dict[str, Any]:
        payload = {
            'transactionDate': format_api_datetime(self.transaction_date),
            'description': self.description,
            'amount': self.amount,
            'accountId': self.account_id,
            'capitalizationEvent': self.capitalization_event,
            'transferenceBetweenAccounts': self.transference_between_accounts,
            'transactionTypeId': self.transaction_type_id,
        }
        if self.id is not None:
            payload['id'] = self.id
        return payload


@dataclass(frozen=True)
class UploadFile:
    name: str
    content: bytes
    content_type: str = 'text/csv'

    @property
    def size(self):
        return len(self.content)


@dataclass(frozen=True)
class UploadLineResult:
    line_number: int
    success: bool
    error: bool
    raw_line: Optional[str] = None
    error_message: Optional[str] = None
    parsed_data: Optional[Dict[str, Any]] = None
    transaction: Optional[Transaction] = None

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> 'UploadLineResult':
        error = bool(data.get('error', False))
        parsed = data.get('parsedData', data.get('csvParsedData'))
        transaction = data.get('transaction')
        return cls(
            line_number=data.get('lineNumber', 0),
            success=bool(data.get('success', not error)),
            error=error,
            raw_line=data.get('rawLine'),
            error_message=data.get('errorMessage'),
            parsed_data=parsed,
            transaction=Transaction.from_json(transaction) if transaction else None,
        )


@dataclass(frozen=True)
class UploadResponse:
    items: List[UploadLineResult] = field(default_factory=list)

    @classmethod
    def from_json(cls, data) -> 'UploadResponse':
        if isinstance(data, dict):
            data = data.get('items', [])
        return cls(items=[UploadLineResult.from_json(item) for item in data or []])

    @property
    def error_count(self):
        return sum(1 for item in self.items if item.error)


class UploadPhase(enum.Enum):
    PARSE = 'parse'
    PROCESS = 'process'
    DONE = 'done'


@dataclass(frozen=True)
class UploadState:
    """Snapshot of an upload session; replaced on every transition."""
    phase: UploadPhase = UploadPhase.PARSE
    response: UploadResponse = field(default_factory=UploadResponse)

    @property
    def items(self):
        return self.response.items
