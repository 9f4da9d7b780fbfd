"""
Review-then-commit sessions.

UploadSession drives a transaction file import: the file is first parsed by
the API for review (nothing stored), then committed. InvestmentReconciliation
drives the statement paste: text is extracted and matched locally, then the
adjustments are created through the repository.

Both sessions report failures through a ``notify`` callback and keep their
state so the user can retry. Neither retries or rolls back on its own.
"""

import asyncio
import logging
from datetime import date
from typing import Callable, List, Optional

from .matching import FuzzyMatcher, match_investments_to_accounts
from .models import (
    Account,
    MatchedInvestmentAccount,
    UploadFile,
    UploadPhase,
    UploadResponse,
    UploadState,
)
from .reconcile import (
    build_transaction_payloads,
    default_transaction_date,
    reconciliation_frame,
    summarize_reconciliation,
)
from .repository import AccountRepository
from .statement import extract_investment_items

logger = logging.getLogger(__name__)

MAX_UPLOAD_FILE_SIZE = 102_400  # 100KB
ALLOWED_UPLOAD_CONTENT_TYPES = ('text/csv', 'text/plain')


class UploadValidationError(ValueError):
    """The selected file cannot be sent for import."""


def error_message(prefix, error):
    """Message shown to the user: prefix plus the cause, when there is one."""
    cause = str(error) if error is not None else ''
    return f"{prefix}{cause or 'Unknown error'}"


def _log_notification(message):
    logger.error(message)


def validate_upload_file(file: Optional[UploadFile]) -> UploadFile:
    """Check a file against the import limits.

    Raises:
        UploadValidationError: If no file is selected, it is larger than
            MAX_UPLOAD_FILE_SIZE, or it is not CSV/plain text
    """
    if file is None:
        raise UploadValidationError("You need to provide a file")
    if file.size > MAX_UPLOAD_FILE_SIZE:
        raise UploadValidationError("The file is too large")
    if file.content_type not in ALLOWED_UPLOAD_CONTENT_TYPES:
        raise UploadValidationError("Unsupported file format")
    return file


class UploadSession:
    """Two phase import of a transaction file into one account.

    Phases run PARSE -> PROCESS -> DONE. Selecting another file goes back to
    PARSE with no results; DONE only allows closing.
    """

    def __init__(self, account_id: int, repository: AccountRepository,
                 notify: Optional[Callable[[str], None]] = None,
                 on_committed: Optional[Callable[[], None]] = None):
        self.account_id = account_id
        self.repository = repository
        self.notify = notify or _log_notification
        self.on_committed = on_committed
        self.file: Optional[UploadFile] = None
        self.busy = False
        self._state = UploadState()
        # Bumped on every selection so in-flight responses for an older file are dropped
        self._selection = 0

    @property
    def state(self) -> UploadState:
        return self._state

    @property
    def phase(self) -> UploadPhase:
        return self._state.phase

    @property
    def can_submit(self):
        return not self.busy and self._state.phase is not UploadPhase.DONE

    def select_file(self, file: UploadFile):
        """Select the file to import, restarting the review.

        The file is checked right away and the user told about a problem;
        it stays selected, and submit() refuses it until another is picked.
        """
        self.file = file
        self._state = UploadState()
        self._selection += 1
        logger.debug(f"Selected {file.name} for account {self.account_id}")

        try:
            validate_upload_file(file)
        except UploadValidationError as e:
            self.notify(str(e))

    def close(self):
        self.file = None
        self._state = UploadState()
        self._selection += 1

    async def submit(self) -> UploadState:
        """Run the action of the current phase.

        Returns:
            UploadState: The state after the call, unchanged on failure
        """
        if not self.can_submit:
            logger.warning(f"Ignoring submit in phase {self._state.phase.value} (busy={self.busy})")
            return self._state

        self.busy = True
        selection = self._selection
        try:
            file = validate_upload_file(self.file)
            if self._state.phase is UploadPhase.PARSE:
                response = await self.repository.parse_upload_file(self.account_id, file)
                if selection != self._selection:
                    logger.info(f"Discarding parse of {file.name}: another file was selected")
                    return self._state
                self._state = UploadState(UploadPhase.PROCESS, response)
                logger.info(f"Parsed {file.name}: {len(response.items)} lines, {response.error_count} errors")
            else:
                response = await self.repository.commit_upload_file(self.account_id, file)
                logger.info(f"Imported {file.name}: {len(response.items)} lines, {response.error_count} errors")
                if selection == self._selection:
                    self._state = UploadState(UploadPhase.DONE, response)
                    self.file = None
                # Refresh even if another file was selected meanwhile
                if self.on_committed:
                    self.on_committed()
        except Exception as e:
            logger.debug("Upload submit failed", exc_info=True)
            self.notify(error_message("Error submitting file: ", e))
        finally:
            self.busy = False

        return self._state


class InvestmentReconciliation:
    """Paste a statement, review the matches, commit the adjustments."""

    def __init__(self, accounts: List[Account], repository: AccountRepository,
                 notify: Optional[Callable[[str], None]] = None,
                 on_committed: Optional[Callable[[], None]] = None,
                 matcher: Optional[FuzzyMatcher] = None,
                 locale: Optional[str] = None):
        self.accounts = accounts
        self.repository = repository
        self.notify = notify or _log_notification
        self.on_committed = on_committed
        self.matcher = matcher
        self.locale = locale
        self.busy = False
        self.matched: Optional[List[MatchedInvestmentAccount]] = None

    def load_statement(self, text: str) -> Optional[List[MatchedInvestmentAccount]]:
        """Extract the statement and match it against the accounts."""
        if not text:
            return self.matched

        try:
            investments = extract_investment_items(text, self.locale)
            self.matched = match_investments_to_accounts(investments, self.accounts, self.matcher)
        except Exception as e:
            logger.debug("Statement parsing failed", exc_info=True)
            self.notify(error_message("Error parsing investment data: ", e))
            self.matched = None
        return self.matched

    @property
    def summary(self):
        if self.matched is None:
            return None
        return summarize_reconciliation(self.matched)

    @property
    def frame(self):
        if self.matched is None:
            return None
        return reconciliation_frame(self.matched)

    def reset(self):
        self.matched = None

    async def commit(self, transaction_date: Optional[date] = None) -> bool:
        """
        Create one adjustment transaction per non-zero delta.

        All requests are sent together. The session is reset and
        on_committed called only if every one of them succeeds; requests that
        did succeed are not undone otherwise.

        Returns:
            bool: True if every transaction was created, False when nothing
                was loaded or a request failed
        """
        if self.busy:
            logger.warning("Commit already in progress")
            return False
        if self.matched is None:
            self.notify(error_message("Error submitting transaction: ", "No investment data loaded"))
            return False
        if transaction_date is None:
            transaction_date = default_transaction_date()

        payloads = build_transaction_payloads(self.matched, transaction_date)

        self.busy = True
        try:
            results = await asyncio.gather(
                *(self.repository.create_or_update_transaction(p) for p in payloads),
                return_exceptions=True,
            )
        finally:
            self.busy = False

        errors = [r for r in results if isinstance(r, BaseException)]
        rejected = [r for r in results if r is None]
        if errors:
            logger.error(f"{len(errors)} of {len(payloads)} transactions failed")
            self.notify(error_message("Error submitting transaction: ", errors[0]))
            return False
        if rejected:
            logger.error(f"{len(rejected)} of {len(payloads)} transactions were rejected")
            self.notify(error_message(
                "Error submitting transaction: ",
                f"{len(rejected)} of {len(payloads)} transactions were not saved"
            ))
            return False

        logger.info(f"Created {len(payloads)} adjustment transactions")
        self.reset()
        if self.on_committed:
            self.on_committed()
        return True
