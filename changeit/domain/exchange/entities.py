"""
Domain entities for the exchange bounded context.

Entities represent core business objects with identity and lifecycle.
They contain no framework imports and no IO operations.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional


class TransactionKind(Enum):
    """What a transaction record describes."""

    EXCHANGE = "exchange"
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"


class TransactionStatus(Enum):
    """Lifecycle status of a transaction record.

    pending -> processing -> completed | failed
    pending -> completed | failed
    """

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Return True for states that never change again."""
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({TransactionStatus.COMPLETED, TransactionStatus.FAILED})
OPEN_STATUSES = frozenset({TransactionStatus.PENDING, TransactionStatus.PROCESSING})


@dataclass(frozen=True)
class Balance:
    """Amount of one currency held by one user."""

    user_id: str
    currency: str
    amount: Decimal
    updated_at: datetime


@dataclass(frozen=True)
class ExchangeRate:
    """Directed rate edge: one unit of ``from_currency`` buys ``rate`` units of ``to_currency``."""

    from_currency: str
    to_currency: str
    rate: Decimal
    updated_at: datetime


@dataclass(frozen=True)
class PriceQuote:
    """Price of one unit of ``symbol`` expressed in the reference currency."""

    symbol: str
    price: Decimal
    quoted_at: datetime


@dataclass(frozen=True)
class Transaction:
    """An append-only record of an exchange, deposit or withdrawal.

    Exchanges fill both currency sides. Deposits fill only the ``to``
    side, withdrawals only the ``from`` side.
    """

    id: str
    user_id: str
    kind: TransactionKind
    status: TransactionStatus
    created_at: datetime
    from_currency: Optional[str] = None
    to_currency: Optional[str] = None
    from_amount: Optional[Decimal] = None
    to_amount: Optional[Decimal] = None
    rate: Optional[Decimal] = None
    fee: Optional[Decimal] = None
    failure_reason: Optional[str] = None
    completed_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


@dataclass(frozen=True)
class NewTransaction:
    """A transaction record about to be appended to the log.

    ``id`` is normally left empty so the log generates one.
    """

    user_id: str
    kind: TransactionKind
    status: TransactionStatus = TransactionStatus.PROCESSING
    from_currency: Optional[str] = None
    to_currency: Optional[str] = None
    from_amount: Optional[Decimal] = None
    to_amount: Optional[Decimal] = None
    rate: Optional[Decimal] = None
    fee: Optional[Decimal] = None
    id: Optional[str] = None
