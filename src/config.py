"""
Engine configuration.

Environment Variables:
    PAYMENTS_ALLOW_LOCKED_ACTIVITY: true/false - keep applying deposits and
        withdrawals on locked accounts (default: false)
    PAYMENTS_DISPUTABLE_TYPES: comma-separated transaction types that may be
        disputed (default: deposit,withdrawal)
    PAYMENTS_AMOUNT_SCALE: fractional digits kept on amounts (default: 4)
    PAYMENTS_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: WARNING)
"""

import logging
import os
from dataclasses import dataclass, field
from typing import FrozenSet, Mapping, Optional

from models import MAX_AMOUNT_SCALE, TransactionType

DEFAULT_AMOUNT_SCALE = 4
DEFAULT_LOG_LEVEL = "WARNING"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


class ConfigError(ValueError):
    """Raised when a configuration value cannot be interpreted."""


def _default_disputable_types() -> FrozenSet[TransactionType]:
    return frozenset({TransactionType.DEPOSIT, TransactionType.WITHDRAWAL})


@dataclass(frozen=True)
class EngineConfig:
    allow_locked_deposits_and_withdrawals: bool = False
    disputable_types: FrozenSet[TransactionType] = field(default_factory=_default_disputable_types)
    amount_scale: int = DEFAULT_AMOUNT_SCALE

    def __post_init__(self):
        if not 0 <= self.amount_scale <= MAX_AMOUNT_SCALE:
            raise ConfigError(f"amount_scale must be between 0 and {MAX_AMOUNT_SCALE}, got {self.amount_scale}")
        allowed = {TransactionType.DEPOSIT, TransactionType.WITHDRAWAL}
        unsupported = set(self.disputable_types) - allowed
        if unsupported:
            names = ", ".join(sorted(t.value for t in unsupported))
            raise ConfigError(f"Only deposits and withdrawals can be disputable, got: {names}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EngineConfig":
        """Build a config from PAYMENTS_* environment variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        kwargs = {}

        if "PAYMENTS_ALLOW_LOCKED_ACTIVITY" in env:
            kwargs["allow_locked_deposits_and_withdrawals"] = parse_bool(env["PAYMENTS_ALLOW_LOCKED_ACTIVITY"])

        if "PAYMENTS_DISPUTABLE_TYPES" in env:
            kwargs["disputable_types"] = parse_transaction_types(env["PAYMENTS_DISPUTABLE_TYPES"])

        if "PAYMENTS_AMOUNT_SCALE" in env:
            try:
                kwargs["amount_scale"] = int(env["PAYMENTS_AMOUNT_SCALE"])
            except ValueError:
                raise ConfigError(f"PAYMENTS_AMOUNT_SCALE must be an integer, got {env['PAYMENTS_AMOUNT_SCALE']!r}")

        return cls(**kwargs)


def parse_bool(value: str) -> bool:
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ConfigError(f"Expected a boolean, got {value!r}")


def parse_transaction_types(value: str) -> FrozenSet[TransactionType]:
    types = set()
    for tag in value.split(","):
        tag = tag.strip().lower()
        if not tag:
            continue
        try:
            types.add(TransactionType(tag))
        except ValueError:
            raise ConfigError(f"Unknown transaction type {tag!r}")
    return frozenset(types)


def resolve_log_level(value: Optional[str] = None) -> int:
    """Map a level name (or PAYMENTS_LOG_LEVEL) to a logging constant."""
    name = (value or os.getenv("PAYMENTS_LOG_LEVEL", DEFAULT_LOG_LEVEL)).upper()
    level_map = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    if name not in level_map:
        raise ConfigError(f"Unknown log level {name!r}")
    return level_map[name]
