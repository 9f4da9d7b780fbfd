"""Bank account API client.

The reconciliation engine never persists anything itself; accounts,
transactions and uploaded files go through an AccountRepository. The
BankAccountClient implements it on top of the bank account REST API:

    async with BankAccountClient() as client:
        accounts = await client.list_accounts()
"""

import logging
from datetime import date
from typing import Any, List, Optional, Protocol

import httpx

from .models import (
    Account,
    Transaction,
    TransactionPayload,
    UploadFile,
    UploadResponse,
    format_api_datetime,
)
from .utils import get_api_base_url

logger = logging.getLogger(__name__)

MAX_ERROR_DETAIL_CHARS = 500  # Truncation limit for error details in messages

ACCOUNTS_PATH = '/api/account'
TRANSACTIONS_PATH = '/api/transaction'
SAVE_TRANSACTION_PATH = '/transaction'
PARSE_FILE_PATH = '/api/transaction/parse-file'
UPLOAD_FILE_PATH = '/api/transaction/upload-file'


class RepositoryError(RuntimeError):
    """The bank account API could not be reached or refused a request."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class AccountRepository(Protocol):
    """Operations the engine needs from the account/transaction store."""

    async def list_accounts(self) -> List[Account]:
        ...

    async def list_transactions(self, account_id: int, start_date: date) -> List[Transaction]:
        ...

    async def create_or_update_transaction(self, payload: TransactionPayload) -> Optional[Transaction]:
        """Return the stored transaction, or None if the API rejected it."""
        ...

    async def parse_upload_file(self, account_id: int, file: UploadFile) -> UploadResponse:
        """Preview how a file would be imported. Persists nothing."""
        ...

    async def commit_upload_file(self, account_id: int, file: UploadFile) -> UploadResponse:
        ...


class BankAccountClient:
    """Async client for the bank account API.

    Must be used as an async context manager so the connection pool is
    closed. Pass ``transport`` to route requests somewhere other than the
    network (tests use httpx.MockTransport).
    """

    def __init__(self, base_url: Optional[str] = None, timeout: float = 30.0, transport=None):
        self.base_url = (base_url or get_api_base_url()).rstrip('/')
        self.timeout = timeout
        self.transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> 'BankAccountClient':
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self.transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError(
                "BankAccountClient must be used as async context manager: "
                "async with BankAccountClient() as client: ..."
            )
        return self._client

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        client = self._get_client()
        try:
            response = await client.request(method, path, **kwargs)
        except httpx.RequestError as e:
            raise RepositoryError(f"{method} {path} failed: {type(e).__name__}: {e}") from e

        if response.is_error:
            detail = response.text[:MAX_ERROR_DETAIL_CHARS]
            logger.warning(f"{method} {path} returned HTTP {response.status_code}: {detail}")
            raise RepositoryError(
                f"Bank account API error: {response.status_code} - {response.reason_phrase}: {detail}",
                status_code=response.status_code,
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise RepositoryError(
                f"Invalid JSON response from {path}: {response.text[:MAX_ERROR_DETAIL_CHARS]}",
                status_code=response.status_code,
            ) from e

    async def list_accounts(self) -> List[Account]:
        data = await self._request('GET', ACCOUNTS_PATH)
        return [Account.from_json(item) for item in data or []]

    async def list_transactions(self, account_id: int, start_date: date) -> List[Transaction]:
        params = {
            'accountId': account_id,
            'startTransactionDate': format_api_datetime(start_date),
        }
        data = await self._request('GET', TRANSACTIONS_PATH, params=params)
        return [Transaction.from_json(item) for item in data or []]

    async def create_or_update_transaction(self, payload: TransactionPayload) -> Optional[Transaction]:
        # The endpoint takes and returns a list
        data = await self._request('POST', SAVE_TRANSACTION_PATH, json=[payload.to_json()])
        if not data:
            logger.warning(f"Transaction for account {payload.account_id} was not saved")
            return None
        return Transaction.from_json(data[0])

    async def _upload(self, path: str, account_id: int, file: UploadFile) -> UploadResponse:
        files = {'fileUpload': (file.name, file.content, file.content_type)}
        data = await self._request('POST', path, files=files, data={'accountId': str(account_id)})
        return UploadResponse.from_json(data)

    async def parse_upload_file(self, account_id: int, file: UploadFile) -> UploadResponse:
        return await self._upload(PARSE_FILE_PATH, account_id, file)

    async def commit_upload_file(self, account_id: int, file: UploadFile) -> UploadResponse:
        return await self._upload(UPLOAD_FILE_PATH, account_id, file)
