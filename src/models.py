from collections import Counter
from dataclasses import dataclass, field
from decimal import ROUND_HALF_EVEN, Context, Decimal, DivisionByZero, InvalidOperation, Overflow, localcontext
from enum import Enum
from typing import Optional

# Amounts stay below MAX_AMOUNT with at most 2**32 transaction ids and at most
# MAX_AMOUNT_SCALE fractional digits, so every balance fits in 64 digits exactly.
MAX_AMOUNT = Decimal(10) ** 30
MAX_AMOUNT_SCALE = 18
LEDGER_CONTEXT = Context(prec=64, rounding=ROUND_HALF_EVEN, traps=[InvalidOperation, DivisionByZero, Overflow])


class TransactionType(Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    DISPUTE = "dispute"
    RESOLVE = "resolve"
    CHARGEBACK = "chargeback"


class DisputeState(Enum):
    NORMAL = "normal"
    DISPUTED = "disputed"
    RESOLVED = "resolved"
    CHARGED_BACK = "charged_back"


class ProcessingStatus(Enum):
    APPLIED = "applied"
    SKIPPED = "skipped"


class SkipReason(Enum):
    INVALID_AMOUNT = "invalid_amount"
    DUPLICATE_TRANSACTION = "duplicate_transaction"
    ACCOUNT_LOCKED = "account_locked"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    TRANSACTION_NOT_FOUND = "transaction_not_found"
    CLIENT_MISMATCH = "client_mismatch"
    NOT_DISPUTABLE = "not_disputable"
    ALREADY_DISPUTED = "already_disputed"
    NOT_DISPUTED = "not_disputed"


@dataclass(frozen=True)
class ProcessingResult:
    status: ProcessingStatus
    reason: Optional[SkipReason] = None

    @classmethod
    def applied(cls) -> "ProcessingResult":
        return cls(ProcessingStatus.APPLIED)

    @classmethod
    def skipped(cls, reason: SkipReason) -> "ProcessingResult":
        return cls(ProcessingStatus.SKIPPED, reason)

    @property
    def is_applied(self) -> bool:
        return self.status is ProcessingStatus.APPLIED


@dataclass(frozen=True)
class Transaction:
    transaction_type: TransactionType
    client_id: int
    transaction_id: int
    amount: Optional[Decimal] = None

    def __repr__(self) -> str:
        return f"Transaction({self.transaction_type.value}, client={self.client_id}, tx={self.transaction_id}, amount={self.amount})"


@dataclass
class TransactionRecord:
    """History entry for a deposit or withdrawal that may later be disputed."""

    transaction_id: int
    client_id: int
    transaction_type: TransactionType
    amount: Decimal
    dispute_state: DisputeState = DisputeState.NORMAL

    @classmethod
    def from_transaction(cls, transaction: Transaction) -> "TransactionRecord":
        return cls(
            transaction_id=transaction.transaction_id,
            client_id=transaction.client_id,
            transaction_type=transaction.transaction_type,
            amount=transaction.amount,
        )


@dataclass
class ClientAccount:
    client_id: int
    available: Decimal = Decimal("0")
    held: Decimal = Decimal("0")
    locked: bool = False

    @property
    def total(self) -> Decimal:
        with localcontext(LEDGER_CONTEXT):
            return self.available + self.held

    def credit(self, amount: Decimal) -> None:
        with localcontext(LEDGER_CONTEXT):
            self.available += amount

    def debit(self, amount: Decimal) -> None:
        with localcontext(LEDGER_CONTEXT):
            self.available -= amount

    def hold(self, amount: Decimal) -> None:
        with localcontext(LEDGER_CONTEXT):
            self.available -= amount
            self.held += amount

    def release_hold(self, amount: Decimal) -> None:
        with localcontext(LEDGER_CONTEXT):
            self.held -= amount
            self.available += amount

    def remove_held(self, amount: Decimal) -> None:
        with localcontext(LEDGER_CONTEXT):
            self.held -= amount

    def lock(self) -> None:
        self.locked = True


@dataclass
class ProcessingStats:
    """Counters for one run: applied events and skipped events per reason."""

    applied: int = 0
    skipped: Counter = field(default_factory=Counter)

    def record(self, result: ProcessingResult) -> None:
        if result.is_applied:
            self.applied += 1
        else:
            self.skipped[result.reason] += 1

    @property
    def total_skipped(self) -> int:
        return sum(self.skipped.values())

    def summary(self) -> str:
        parts = [f"Applied: {self.applied}", f"Skipped: {self.total_skipped}"]
        for reason, count in sorted(self.skipped.items(), key=lambda item: item[0].value):
            parts.append(f"{reason.value}={count}")
        return ", ".join(parts)
