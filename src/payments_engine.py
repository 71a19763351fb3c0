import logging
from typing import Iterable, List, Optional

from config import EngineConfig
from models import ClientAccount, ProcessingResult, ProcessingStats, Transaction
from state_manager import StateManager
from transaction_processor import TransactionProcessor
from transaction_reader import read_transactions

logger = logging.getLogger(__name__)


class PaymentsEngine:
    """
    Replays an ordered stream of transactions against client accounts.

    Each instance owns its own state, so separate runs never share accounts
    or history. Transactions are applied strictly in the order received.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self._config = config or EngineConfig()
        self._state = StateManager()
        self._processor = TransactionProcessor(self._state, self._config)
        self._stats = ProcessingStats()

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def stats(self) -> ProcessingStats:
        return self._stats

    def apply(self, transaction: Transaction) -> ProcessingResult:
        """Apply one transaction and record the outcome."""
        result = self._processor.process_transaction(transaction)
        self._stats.record(result)
        if not result.is_applied:
            logger.debug(f"Skipped {transaction}: {result.reason.value}")
        return result

    def process_transactions(self, transactions: Iterable[Transaction]) -> List[ClientAccount]:
        """Fold transactions into account state and return the final snapshot."""
        for transaction in transactions:
            self.apply(transaction)

        logger.info(self._stats.summary())
        return self.snapshot()

    def process_file(self, filepath: str) -> List[ClientAccount]:
        """Process CSV file and return final account states."""
        logger.info(f"Processing {filepath}")
        return self.process_transactions(read_transactions(filepath, self._config.amount_scale))

    def snapshot(self) -> List[ClientAccount]:
        """Accounts in order of first appearance."""
        return self._state.get_all_accounts()
