from datetime import date

import pandas as pd
import pytest

from statement_reconcile import cli
from statement_reconcile.matching import match_investments_to_accounts
from statement_reconcile.models import InvestmentItem
from statement_reconcile.reconcile import (
    format_report_summary,
    generate_reconciliation_report,
    save_reconciliation_results,
    summarize_reconciliation,
)
from statement_reconcile.utils import (
    ensure_directory,
    get_statement_locale,
    resolve_output_path,
)
from tests.conftest import DummyRepository


@pytest.fixture
def matched_accounts(sample_accounts):
    investments = [
        InvestmentItem('Itaú Dunamis Fundo de Ações', 1456151.66),
        InvestmentItem('Tesouro IPCA 2035', 1100.0),
        InvestmentItem('CDB-DI', 15420.09),
    ]
    return match_investments_to_accounts(investments, sample_accounts)


class FakeClient(DummyRepository):
    """DummyRepository usable as ``async with BankAccountClient(...)``."""

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None


@pytest.fixture
def fake_client(monkeypatch, tmp_path):
    monkeypatch.setenv('LOG_FILE', str(tmp_path / 'logs' / 'reconcile.log'))

    def install(**kwargs):
        client = FakeClient(**kwargs)
        monkeypatch.setattr(cli, 'BankAccountClient', lambda api_url=None: client)
        return client
    return install


class TestSaveResults:

    def test_csv_round_trip(self, matched_accounts, tmp_path):
        path = save_reconciliation_results(matched_accounts, tmp_path)
        assert path.name == 'investment_reconciliation.csv'

        df = pd.read_csv(path, dtype={'Matched': str})
        assert list(df['Account']) == ['Itau Dunamis', 'Tesouro IPCA 2035', 'CDB DI', 'Wallet']
        assert list(df['Matched']) == ['True', 'True', 'True', 'False']
        assert df.loc[1, 'Value'] == pytest.approx(100.0)
        assert pd.isna(df.loc[2, 'Percentage'])

    def test_xlsx(self, matched_accounts, tmp_path):
        path = save_reconciliation_results(matched_accounts, tmp_path / 'review.xlsx')
        df = pd.read_excel(path, sheet_name='Reconciliation', dtype={'Matched': str})
        assert len(df) == 4
        assert list(df['Matched']) == ['True', 'True', 'True', 'False']


class TestReport:

    def test_summary_text(self, matched_accounts):
        text = format_report_summary(summarize_reconciliation(matched_accounts))
        assert 'Total Accounts: 4' in text
        assert 'Matched Accounts: 3' in text
        assert 'Unmatched Accounts: 1' in text
        assert 'Reconciling Value: 71671.75' in text

    def test_report_file(self, matched_accounts, tmp_path):
        path = generate_reconciliation_report(matched_accounts, tmp_path / 'reports')
        assert path.name == 'reconciliation_report.txt'
        content = path.read_text()
        assert 'Matched Accounts: 3' in content
        assert 'No matched accounts found' not in content
        assert 'No unmatched accounts found' not in content

    def test_report_without_matches(self, sample_accounts, tmp_path):
        matched = match_investments_to_accounts([], sample_accounts)
        content = generate_reconciliation_report(matched, tmp_path).read_text()
        assert 'No matched accounts found' in content
        assert 'No unmatched accounts found' not in content


class TestUtils:

    def test_statement_locale(self, monkeypatch):
        monkeypatch.setenv('STATEMENT_LOCALE', 'en-US')
        assert get_statement_locale() == 'en_US'
        monkeypatch.delenv('STATEMENT_LOCALE')
        assert get_statement_locale() == 'pt_BR'

    def test_ensure_directory(self, monkeypatch, tmp_path):
        monkeypatch.setenv('DATA_DIR', str(tmp_path))
        path = ensure_directory('output')
        assert path == tmp_path / 'output'
        assert path.is_dir()

    def test_ensure_directory_invalid(self):
        with pytest.raises(ValueError, match='Invalid directory type'):
            ensure_directory('cache')

    def test_resolve_output_path(self, tmp_path):
        assert resolve_output_path(tmp_path / 'out', 'a.csv') == tmp_path / 'out' / 'a.csv'
        assert resolve_output_path(tmp_path / 'b.csv', 'a.csv') == tmp_path / 'b.csv'
        assert (tmp_path / 'out').is_dir()


class TestCli:

    def test_invalid_date(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(['transactions', '--account-id', '1', '--since', '2025-02-01'])

    def test_transactions_command(self, fake_client, sample_transactions, capsys):
        client = fake_client(transactions=sample_transactions)
        assert cli.main(['transactions', '--account-id', '1', '--filter', 'coffee']) == 0

        lines = capsys.readouterr().out.splitlines()
        assert lines == [
            '3\t2025-01-31\t-12.00\tMorning   COFFEE shop',
            '5\t2025-02-02\t10.00\tcoffee beans',
        ]
        assert client.calls == ['list_transactions']

    def test_investments_command(self, fake_client, sample_accounts, sample_statement_text, tmp_path, capsys):
        client = fake_client(accounts=sample_accounts)
        statement = tmp_path / 'statement.txt'
        statement.write_text(sample_statement_text, encoding='utf-8')
        output = tmp_path / 'output'

        assert cli.main(['investments', str(statement), '--output', str(output),
                         '--commit', '--date', '31/01/2025']) == 0

        assert (output / 'investment_reconciliation.csv').exists()
        assert (output / 'reconciliation_report.txt').exists()
        assert [t.account_id for t in client.created] == [1, 2, 3]
        assert {t.transaction_date.date() for t in client.created} == {date(2025, 1, 31)}
        assert 'Matched Accounts: 3' in capsys.readouterr().out

    def test_investments_command_default_output(self, fake_client, sample_accounts, sample_statement_text,
                                                tmp_path, monkeypatch):
        fake_client(accounts=sample_accounts)
        monkeypatch.setenv('DATA_DIR', str(tmp_path / 'data'))
        statement = tmp_path / 'statement.txt'
        statement.write_text(sample_statement_text, encoding='utf-8')

        assert cli.main(['investments', str(statement)]) == 0
        assert (tmp_path / 'data' / 'output' / 'investment_reconciliation.csv').exists()
        assert (tmp_path / 'data' / 'output' / 'reconciliation_report.txt').exists()

    def test_investments_command_without_items(self, fake_client, sample_accounts, tmp_path):
        client = fake_client(accounts=sample_accounts)
        statement = tmp_path / 'statement.txt'
        statement.write_text('Nothing to see here', encoding='utf-8')

        # Every account is listed unmatched and nothing is booked
        assert cli.main(['investments', str(statement), '--output', str(tmp_path), '--commit']) == 0
        assert client.created == []
        assert (tmp_path / 'reconciliation_report.txt').read_text().count('No matched accounts found') == 1

    def test_upload_command(self, fake_client, upload_response, tmp_path, capsys):
        client = fake_client(upload_response=upload_response)
        path = tmp_path / 'january.csv'
        path.write_bytes(b'date,description,amount\n31/01/2025,Coffee,-12.00\n')

        assert cli.main(['upload', str(path), '--account-id', '7', '--process']) == 0
        assert client.calls == [('parse', 7, 'january.csv'), ('commit', 7, 'january.csv')]
        out = capsys.readouterr().out
        assert '2\tError' in out
