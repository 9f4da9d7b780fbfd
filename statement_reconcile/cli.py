"""Command line entry point.

Subcommands:
- investments: reconcile a pasted statement (text file) against the accounts
- upload: parse, and optionally import, a transaction file into an account
- transactions: list an account's transactions with the free text filter
"""

import argparse
import asyncio
import logging
import mimetypes
import pathlib
from datetime import datetime

from .filters import filter_transactions
from .models import UploadFile, UploadPhase
from .reconcile import (
    default_transaction_date,
    format_report_summary,
    generate_reconciliation_report,
    save_reconciliation_results,
)
from .repository import BankAccountClient
from .utils import ensure_directory, setup_logging
from .workflow import InvestmentReconciliation, UploadSession

logger = logging.getLogger(__name__)

DEFAULT_TRANSACTIONS_SINCE = '01/02/2025'


def parse_cli_date(value):
    """argparse type for dd/mm/yyyy dates."""
    try:
        return datetime.strptime(value, '%d/%m/%Y').date()
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date (expected dd/mm/yyyy): {value}")


def build_parser():
    parser = argparse.ArgumentParser(description='Reconcile investment statements and bank transactions')
    parser.add_argument('--api-url', type=str, default=None,
                        help='Bank account API base URL (defaults to BANK_ACCOUNT_API_BASE_URL)')
    parser.add_argument('--locale', type=str, default=None,
                        help='Locale of statement numbers (defaults to STATEMENT_LOCALE or pt_BR)')
    parser.add_argument('--debug', action='store_true',
                        help='Enable debug logging')
    subparsers = parser.add_subparsers(dest='command', required=True)

    investments = subparsers.add_parser('investments', help='Reconcile a pasted investment statement')
    investments.add_argument('statement', type=str,
                             help='Text file with the statement copied from the investment platform')
    investments.add_argument('--date', type=parse_cli_date, default=None,
                             help='Booking date of the adjustments (dd/mm/yyyy)')
    investments.add_argument('--output', type=str, default=None,
                             help='Output directory (defaults to output/ under DATA_DIR)')
    investments.add_argument('--commit', action='store_true',
                             help='Create the adjustment transactions')

    upload = subparsers.add_parser('upload', help='Import a transaction file')
    upload.add_argument('file', type=str, help='CSV or text file to import')
    upload.add_argument('--account-id', type=int, required=True)
    upload.add_argument('--process', action='store_true',
                        help='Import the file after parsing it')

    transactions = subparsers.add_parser('transactions', help='List transactions of an account')
    transactions.add_argument('--account-id', type=int, required=True)
    transactions.add_argument('--since', type=parse_cli_date,
                              default=parse_cli_date(DEFAULT_TRANSACTIONS_SINCE),
                              help='First transaction date (dd/mm/yyyy)')
    transactions.add_argument('--filter', type=str, default='',
                              help='Date, amount or description to filter by')
    return parser


def read_upload_file(path):
    path = pathlib.Path(path)
    content_type, _ = mimetypes.guess_type(path.name)
    return UploadFile(name=path.name, content=path.read_bytes(), content_type=content_type or 'text/plain')


async def run_investments(args):
    statement = pathlib.Path(args.statement).read_text(encoding='utf-8')
    async with BankAccountClient(args.api_url) as client:
        accounts = await client.list_accounts()
        session = InvestmentReconciliation(accounts, client, locale=args.locale)
        matched = session.load_statement(statement)
        if matched is None:
            return 1

        output_dir = args.output or ensure_directory('output')
        save_reconciliation_results(matched, output_dir)
        generate_reconciliation_report(matched, output_dir)
        print(session.frame.to_string(index=False))
        print(format_report_summary(session.summary))

        if args.commit:
            transaction_date = args.date or default_transaction_date()
            if not await session.commit(transaction_date):
                return 1
    return 0


async def run_upload(args):
    async with BankAccountClient(args.api_url) as client:
        session = UploadSession(args.account_id, client)
        session.select_file(read_upload_file(args.file))

        state = await session.submit()
        if args.process and state.phase is UploadPhase.PROCESS:
            state = await session.submit()

        for item in state.items:
            status = 'Error' if item.error else 'Success'
            print(f"{item.line_number}\t{status}\t{item.parsed_data or ''}\t{item.error_message or ''}")

        expected = UploadPhase.DONE if args.process else UploadPhase.PROCESS
        return 0 if state.phase is expected else 1


async def run_transactions(args):
    async with BankAccountClient(args.api_url) as client:
        transactions = await client.list_transactions(args.account_id, args.since)

    if args.filter:
        transactions = filter_transactions(args.filter, transactions)

    for transaction in transactions:
        print(f"{transaction.id}\t{transaction.transaction_date.date().isoformat()}\t"
              f"{transaction.amount:.2f}\t{transaction.description or ''}")
    return 0


COMMANDS = {
    'investments': run_investments,
    'upload': run_upload,
    'transactions': run_transactions,
}


def main(argv=None):
    """Main execution function."""
    args = build_parser().parse_args(argv)
    setup_logging(debug=args.debug)
    logger.info(f"Running {args.command}")

    try:
        return asyncio.run(COMMANDS[args.command](args))
    except Exception as e:
        logger.error(f"Error during {args.command}: {str(e)}")
        raise


if __name__ == '__main__':
    raise SystemExit(main())
