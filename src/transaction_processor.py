import logging
from typing import Optional, Union, assert_never

from config import EngineConfig
from models import (
    MAX_AMOUNT,
    ClientAccount,
    DisputeState,
    ProcessingResult,
    SkipReason,
    Transaction,
    TransactionRecord,
    TransactionType,
)
from state_manager import StateManager

logger = logging.getLogger(__name__)


class TransactionProcessor:
    """
    Applies the ledger state machine to one transaction at a time.

    Every precondition failure is returned as a skipped ProcessingResult and
    leaves the account untouched; nothing here raises for bad input.
    """

    def __init__(self, state: StateManager, config: EngineConfig):
        self._state = state
        self._config = config

    def process_transaction(self, transaction: Transaction) -> ProcessingResult:
        """
        Process a single transaction.

        Returns:
            APPLIED: the transaction changed account and/or history state
            SKIPPED(reason): a precondition failed, nothing was changed
        """
        account = self._state.get_or_create_account(transaction.client_id)

        match transaction.transaction_type:
            case TransactionType.DEPOSIT:
                return self._handle_deposit(account, transaction)
            case TransactionType.WITHDRAWAL:
                return self._handle_withdrawal(account, transaction)
            case TransactionType.DISPUTE:
                return self._handle_dispute(account, transaction)
            case TransactionType.RESOLVE:
                return self._handle_resolve(account, transaction)
            case TransactionType.CHARGEBACK:
                return self._handle_chargeback(account, transaction)
            case _:
                assert_never(transaction.transaction_type)

    def _check_new_funds_movement(self, account: ClientAccount, transaction: Transaction) -> Optional[ProcessingResult]:
        """Shared preconditions for deposits and withdrawals."""
        kind = transaction.transaction_type.value.capitalize()
        amount = transaction.amount

        if amount is None or not amount.is_finite() or amount < 0 or amount >= MAX_AMOUNT:
            logger.info(f"{kind} tx {transaction.transaction_id}: invalid amount {amount}")
            return ProcessingResult.skipped(SkipReason.INVALID_AMOUNT)

        if self._state.has_transaction(transaction.transaction_id):
            logger.info(f"{kind} tx {transaction.transaction_id}: transaction id already used, skipping")
            return ProcessingResult.skipped(SkipReason.DUPLICATE_TRANSACTION)

        if account.locked and not self._config.allow_locked_deposits_and_withdrawals:
            logger.info(f"{kind} tx {transaction.transaction_id}: account {account.client_id} is locked")
            return ProcessingResult.skipped(SkipReason.ACCOUNT_LOCKED)

        return None

    def _lookup_referenced(self, transaction: Transaction) -> Union[TransactionRecord, ProcessingResult]:
        """Find the record a dispute/resolve/chargeback points at, or the reason it can't be used."""
        kind = transaction.transaction_type.value.capitalize()
        record = self._state.get_transaction(transaction.transaction_id)

        if record is None:
            logger.info(f"{kind} for tx {transaction.transaction_id}: transaction not found")
            return ProcessingResult.skipped(SkipReason.TRANSACTION_NOT_FOUND)

        if record.client_id != transaction.client_id:
            logger.info(f"{kind} for tx {transaction.transaction_id}: client mismatch (expected {record.client_id}, got {transaction.client_id})")
            return ProcessingResult.skipped(SkipReason.CLIENT_MISMATCH)

        return record

    def _handle_deposit(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        rejection = self._check_new_funds_movement(account, transaction)
        if rejection is not None:
            return rejection

        account.credit(transaction.amount)
        self._state.store_transaction(transaction)
        return ProcessingResult.applied()

    def _handle_withdrawal(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        rejection = self._check_new_funds_movement(account, transaction)
        if rejection is not None:
            return rejection

        if account.available < transaction.amount:
            logger.info(f"Withdrawal tx {transaction.transaction_id}: insufficient funds (available {account.available}, requested {transaction.amount})")
            return ProcessingResult.skipped(SkipReason.INSUFFICIENT_FUNDS)

        account.debit(transaction.amount)
        self._state.store_transaction(transaction)
        return ProcessingResult.applied()

    def _handle_dispute(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        record = self._lookup_referenced(transaction)
        if isinstance(record, ProcessingResult):
            return record

        if record.transaction_type not in self._config.disputable_types:
            logger.info(f"Dispute for tx {transaction.transaction_id}: {record.transaction_type.value} transactions are not disputable")
            return ProcessingResult.skipped(SkipReason.NOT_DISPUTABLE)

        if record.dispute_state is not DisputeState.NORMAL:
            logger.info(f"Dispute for tx {transaction.transaction_id}: transaction is {record.dispute_state.value}")
            return ProcessingResult.skipped(SkipReason.ALREADY_DISPUTED)

        # available must stay non-negative
        if account.available < record.amount:
            logger.info(f"Dispute for tx {transaction.transaction_id}: available {account.available} cannot cover {record.amount}")
            return ProcessingResult.skipped(SkipReason.INSUFFICIENT_FUNDS)

        account.hold(record.amount)
        record.dispute_state = DisputeState.DISPUTED
        return ProcessingResult.applied()

    def _handle_resolve(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        record = self._lookup_referenced(transaction)
        if isinstance(record, ProcessingResult):
            return record

        if record.dispute_state is not DisputeState.DISPUTED:
            logger.info(f"Resolve for tx {transaction.transaction_id}: transaction is {record.dispute_state.value}, not disputed")
            return ProcessingResult.skipped(SkipReason.NOT_DISPUTED)

        account.release_hold(record.amount)
        record.dispute_state = DisputeState.RESOLVED
        return ProcessingResult.applied()

    def _handle_chargeback(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        record = self._lookup_referenced(transaction)
        if isinstance(record, ProcessingResult):
            return record

        if record.dispute_state is not DisputeState.DISPUTED:
            logger.info(f"Chargeback for tx {transaction.transaction_id}: transaction is {record.dispute_state.value}, not disputed")
            return ProcessingResult.skipped(SkipReason.NOT_DISPUTED)

        account.remove_held(record.amount)
        account.lock()
        record.dispute_state = DisputeState.CHARGED_BACK
        logger.info(f"Chargeback for tx {transaction.transaction_id}: account {account.client_id} locked")
        return ProcessingResult.applied()
