import csv
import logging
from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation, localcontext
from typing import Dict, Iterator, Optional

from config import DEFAULT_AMOUNT_SCALE
from models import LEDGER_CONTEXT, MAX_AMOUNT, Transaction, TransactionType

logger = logging.getLogger(__name__)

MAX_CLIENT_ID = 65535
MAX_TRANSACTION_ID = 4294967295

AMOUNT_REQUIRED = {TransactionType.DEPOSIT, TransactionType.WITHDRAWAL}


class RowError(ValueError):
    """A single CSV row could not be turned into a Transaction."""


def read_transactions(filepath: str, amount_scale: int = DEFAULT_AMOUNT_SCALE) -> Iterator[Transaction]:
    """
    Lazily read transactions from a CSV file with a `type, client, tx, amount` header.

    Malformed rows, including ones the csv module itself rejects, are logged
    and dropped. Failing to open the file raises OSError to the caller.
    """
    with open(filepath, "r", newline="", encoding="utf-8-sig") as f:
        reader = csv.DictReader(f)
        while True:
            try:
                row = next(reader)
            except StopIteration:
                break
            except csv.Error as e:
                logger.warning(f"Failed to read row on line {reader.line_num}: {e}")
                continue

            transaction = parse_csv_row(row, amount_scale, line=reader.line_num)
            if transaction:
                yield transaction


def parse_csv_row(row: Dict[str, str], amount_scale: int = DEFAULT_AMOUNT_SCALE, line: Optional[int] = None) -> Optional[Transaction]:
    """Parse CSV row into Transaction, or None if the row is malformed."""
    try:
        return _parse_row(row, amount_scale)
    except RowError as e:
        where = f" on line {line}" if line is not None else ""
        logger.warning(f"Failed to parse row{where} {row}: {e}")
        return None


def _parse_row(row: Dict[str, str], amount_scale: int) -> Transaction:
    # DictReader stores surplus columns under the None key
    if None in row:
        raise RowError("too many columns")

    normalized = {k.strip().lower(): (v or "").strip() for k, v in row.items()}

    try:
        transaction_type = TransactionType(normalized["type"].lower())
    except KeyError:
        raise RowError("missing type column")
    except ValueError:
        raise RowError(f"unknown transaction type {normalized['type']!r}")

    client_id = _parse_id(normalized, "client", MAX_CLIENT_ID)
    transaction_id = _parse_id(normalized, "tx", MAX_TRANSACTION_ID)

    amount = None
    if transaction_type in AMOUNT_REQUIRED:
        amount = _parse_amount(normalized.get("amount", ""), amount_scale)

    return Transaction(
        transaction_type=transaction_type,
        client_id=client_id,
        transaction_id=transaction_id,
        amount=amount,
    )


def _parse_id(normalized: Dict[str, str], column: str, maximum: int) -> int:
    raw = normalized.get(column, "")
    try:
        value = int(raw)
    except ValueError:
        raise RowError(f"{column} must be an integer, got {raw!r}")
    if not 0 <= value <= maximum:
        raise RowError(f"{column} {value} out of range 0..{maximum}")
    return value


def _parse_amount(raw: str, amount_scale: int) -> Decimal:
    if not raw:
        raise RowError("amount is required")
    try:
        amount = Decimal(raw)
    except InvalidOperation:
        raise RowError(f"amount is not a number: {raw!r}")
    if not amount.is_finite():
        raise RowError(f"amount must be finite, got {raw!r}")
    if amount < 0:
        raise RowError(f"amount must not be negative, got {raw!r}")
    try:
        with localcontext(LEDGER_CONTEXT):
            amount = amount.quantize(Decimal(1).scaleb(-amount_scale), rounding=ROUND_HALF_EVEN)
    except InvalidOperation:
        raise RowError(f"amount too large: {raw!r}")
    if amount >= MAX_AMOUNT:
        raise RowError(f"amount too large: {raw!r}")
    return amount
