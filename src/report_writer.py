import csv
from decimal import ROUND_HALF_EVEN, Decimal, localcontext
from typing import Iterable, TextIO

from config import DEFAULT_AMOUNT_SCALE
from models import LEDGER_CONTEXT, ClientAccount

HEADER = ["client", "available", "held", "total", "locked"]


def format_decimal(value: Decimal, scale: int = DEFAULT_AMOUNT_SCALE) -> str:
    """Format decimal with exactly `scale` fractional digits."""
    with localcontext(LEDGER_CONTEXT):
        quantized = value.quantize(Decimal(1).scaleb(-scale), rounding=ROUND_HALF_EVEN)
    return f"{quantized:f}"


def write_accounts(accounts: Iterable[ClientAccount], stream: TextIO, scale: int = DEFAULT_AMOUNT_SCALE) -> None:
    """Write one CSV row per account, in the order given."""
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(HEADER)
    for account in accounts:
        writer.writerow([
            account.client_id,
            format_decimal(account.available, scale),
            format_decimal(account.held, scale),
            format_decimal(account.total, scale),
            str(account.locked).lower(),
        ])
