import pytest
from datetime import datetime

from statement_reconcile.models import (
    Account,
    Transaction,
    UploadFile,
    UploadLineResult,
    UploadResponse,
)

# Noise lines between the name line and the final value of a portfolio record
portfolio_noise_lines = [
    '4,08%\tR$ 22.670,37',
    '4,94%\tR$ 33.833,54',
    '6,95%\tR$ 17.102,45',
    '2,04%\tR$ 48.183,95',
    '7,63%\tR$ 12.759,37',
]


def portfolio_record(name, final_value, first_value='1.315,20'):
    """Statement record in the portfolio layout."""
    lines = [f'{name}\tR$ {first_value}']
    lines += portfolio_noise_lines
    lines.append(f'39,66%\t{final_value}\tresgatar\taplicar')
    return '\n'.join(lines)


def no_value_record(name, final_value):
    """Statement record in the no-value layout."""
    return name + '\t\n-\nNenhum valor' * 5 + f'\t{final_value}\tresgatar\taplicar'


def make_account(id, description, balance):
    return Account(
        id=id,
        account_number=f'000{id}',
        account_holder='Maria Silva',
        description=description,
        balance=balance,
    )


def make_transaction(id, day, amount, description, month=1, year=2025, account_id=1):
    return Transaction(
        id=id,
        amount=amount,
        transaction_date=datetime(year, month, day),
        account_id=account_id,
        description=description,
    )


@pytest.fixture(autouse=True)
def statement_locale(monkeypatch):
    """Statements are read as pt_BR unless a test says otherwise."""
    monkeypatch.setenv('STATEMENT_LOCALE', 'pt_BR')


@pytest.fixture
def sample_statement_text():
    """Statement with two portfolio records and one no-value record."""
    return '\n'.join([
        'Minha carteira',
        'Produto\tSaldo bruto',
        portfolio_record('Itaú Dunamis Fundo de Ações', '1.456.151,66'),
        portfolio_record('Tesouro IPCA 2035', '1.100,00'),
        no_value_record('CDB-DI', '15.420,09'),
        'Total\tR$ 1.472.671,75',
    ])


@pytest.fixture
def sample_accounts():
    return [
        make_account(1, 'Itau Dunamis', 1400000.00),
        make_account(2, 'Tesouro IPCA 2035', 1000.00),
        make_account(3, 'CDB DI', 0.0),
        make_account(4, 'Wallet', 300.00),
    ]


@pytest.fixture
def sample_transactions():
    return [
        make_transaction(1, 30, -45.90, 'Padaria  Pão Quente'),
        make_transaction(2, 31, 1234.56, 'Salario janeiro'),
        make_transaction(3, 31, -12.00, 'Morning   COFFEE shop'),
        make_transaction(4, 15, 10.00, None),
        make_transaction(5, 2, 10.00, 'coffee beans', month=2),
    ]


@pytest.fixture
def csv_upload_file():
    content = b'date,description,amount\n31/01/2025,Coffee,-12.00\n'
    return UploadFile(name='january.csv', content=content, content_type='text/csv')


@pytest.fixture
def upload_response():
    return UploadResponse(items=[
        UploadLineResult(line_number=1, success=True, error=False,
                         parsed_data={'transactionDate': '2025-01-31', 'description': 'Coffee', 'amount': -12.0}),
        UploadLineResult(line_number=2, success=False, error=True, error_message='Invalid amount'),
    ])


class DummyRepository:
    """In-memory AccountRepository recording every call.

    Args:
        fail_accounts: account ids whose transaction creation raises
        reject_accounts: account ids whose transaction creation returns None
        parse_error / commit_error: exception raised by the upload calls
    """

    def __init__(self, accounts=None, transactions=None, upload_response=None,
                 fail_accounts=(), reject_accounts=(), parse_error=None, commit_error=None):
        self.accounts = accounts or []
        self.transactions = transactions or []
        self.upload_response = upload_response or UploadResponse()
        self.fail_accounts = set(fail_accounts)
        self.reject_accounts = set(reject_accounts)
        self.parse_error = parse_error
        self.commit_error = commit_error
        self.created = []
        self.calls = []

    async def list_accounts(self):
        self.calls.append('list_accounts')
        return list(self.accounts)

    async def list_transactions(self, account_id, start_date):
        self.calls.append('list_transactions')
        return [t for t in self.transactions if t.account_id == account_id]

    async def create_or_update_transaction(self, payload):
        self.calls.append(('create', payload.account_id))
        if payload.account_id in self.fail_accounts:
            raise RuntimeError(f'Account {payload.account_id} is closed')
        if payload.account_id in self.reject_accounts:
            return None
        transaction = Transaction(
            id=len(self.created) + 100,
            amount=payload.amount,
            transaction_date=datetime.combine(payload.transaction_date, datetime.min.time()),
            account_id=payload.account_id,
            description=payload.description,
        )
        self.created.append(transaction)
        return transaction

    async def parse_upload_file(self, account_id, file):
        self.calls.append(('parse', account_id, file.name))
        if self.parse_error:
            raise self.parse_error
        return self.upload_response

    async def commit_upload_file(self, account_id, file):
        self.calls.append(('commit', account_id, file.name))
        if self.commit_error:
            raise self.commit_error
        return self.upload_response
