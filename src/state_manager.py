import dataclasses
from typing import Dict, List, Optional

from models import ClientAccount, Transaction, TransactionRecord


class StateManager:
    """
    Owns the account map and the transaction history for a single run.
    History is keyed by transaction id across all clients, so id reuse is
    detected globally rather than per client.
    """

    def __init__(self):
        # Insertion order of _accounts is the report order.
        self._accounts: Dict[int, ClientAccount] = {}
        self._transactions: Dict[int, TransactionRecord] = {}

    def get_or_create_account(self, client_id: int) -> ClientAccount:
        """Get existing account or create new one."""
        if client_id not in self._accounts:
            self._accounts[client_id] = ClientAccount(client_id=client_id)
        return self._accounts[client_id]

    def get_account(self, client_id: int) -> Optional[ClientAccount]:
        return self._accounts.get(client_id)

    def store_transaction(self, transaction: Transaction) -> TransactionRecord:
        """Record a deposit or withdrawal for future dispute lookups."""
        record = TransactionRecord.from_transaction(transaction)
        self._transactions[record.transaction_id] = record
        return record

    def get_transaction(self, transaction_id: int) -> Optional[TransactionRecord]:
        """Retrieve stored transaction record by ID."""
        return self._transactions.get(transaction_id)

    def has_transaction(self, transaction_id: int) -> bool:
        return transaction_id in self._transactions

    def get_all_accounts(self) -> List[ClientAccount]:
        """Return copies of all accounts in order of first appearance (for final output)."""
        return [dataclasses.replace(account) for account in self._accounts.values()]
