"""
Data Transfer Objects for the exchange application layer.

DTOs carry data between the interface and application layers.
They are plain dataclasses with no behavior.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from changeit.domain.exchange.entities import Transaction, TransactionKind


@dataclass(frozen=True)
class GetExchangeRateQuery:
    """Input DTO for quoting a rate.

    Attributes:
        from_currency: Symbol being sold.
        to_currency: Symbol being bought.
    """

    from_currency: str
    to_currency: str


@dataclass(frozen=True)
class ExchangeRateResult:
    """Output DTO for a rate quote.

    Attributes:
        from_currency: Symbol being sold.
        to_currency: Symbol being bought.
        rate: Effective rate after spread.
        market_rate: Resolved rate before spread.
    """

    from_currency: str
    to_currency: str
    rate: Decimal
    market_rate: Decimal


@dataclass(frozen=True)
class ExecuteExchangeCommand:
    """Input DTO for executing an exchange.

    Attributes:
        user_id: Authenticated user performing the exchange.
        from_currency: Symbol debited.
        to_currency: Symbol credited.
        from_amount: Amount of ``from_currency`` to sell, fee included.
    """

    user_id: str
    from_currency: str
    to_currency: str
    from_amount: Decimal


@dataclass(frozen=True)
class ExchangeResult:
    """Output DTO for a completed exchange.

    Attributes:
        transaction_id: Id of the completed transaction record.
        from_currency: Symbol debited.
        to_currency: Symbol credited.
        from_amount: Amount debited from the source balance.
        to_amount: Amount credited to the destination balance.
        rate: Effective rate applied.
        fee: Fee retained, in the source currency.
    """

    transaction_id: str
    from_currency: str
    to_currency: str
    from_amount: Decimal
    to_amount: Decimal
    rate: Decimal
    fee: Decimal


@dataclass(frozen=True)
class GetBalanceQuery:
    user_id: str
    currency: str


@dataclass(frozen=True)
class BalanceResult:
    """Output DTO for one balance.

    ``updated_at`` is None when the user has never held the currency.
    """

    currency: str
    amount: Decimal
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class ListTransactionsQuery:
    """Input DTO for paging through a user's transaction history.

    Attributes:
        user_id: Owner of the records.
        limit: Page size.
        offset: Number of records to skip.
        kind: Optional filter on the transaction kind.
    """

    user_id: str
    limit: int = 50
    offset: int = 0
    kind: Optional[TransactionKind] = None


@dataclass(frozen=True)
class TransactionResult:
    """Output DTO for one transaction record."""

    id: str
    kind: str
    status: str
    created_at: datetime
    from_currency: Optional[str] = None
    to_currency: Optional[str] = None
    from_amount: Optional[Decimal] = None
    to_amount: Optional[Decimal] = None
    rate: Optional[Decimal] = None
    fee: Optional[Decimal] = None
    failure_reason: Optional[str] = None
    completed_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, record: Transaction) -> "TransactionResult":
        return cls(
            id=record.id,
            kind=record.kind.value,
            status=record.status.value,
            created_at=record.created_at,
            from_currency=record.from_currency,
            to_currency=record.to_currency,
            from_amount=record.from_amount,
            to_amount=record.to_amount,
            rate=record.rate,
            fee=record.fee,
            failure_reason=record.failure_reason,
            completed_at=record.completed_at,
        )


@dataclass(frozen=True)
class FundMovementCommand:
    """Input DTO for a deposit or a withdrawal.

    Attributes:
        user_id: Owner of the balance.
        currency: Symbol moved.
        amount: Positive amount moved.
    """

    user_id: str
    currency: str
    amount: Decimal


@dataclass(frozen=True)
class FundMovementResult:
    """Output DTO for a completed deposit or withdrawal."""

    transaction_id: str
    currency: str
    amount: Decimal
    balance: Decimal


@dataclass(frozen=True)
class RefreshRatesResult:
    """Output DTO for a rate refresh.

    Attributes:
        quoted_symbols: Symbols the price feed returned.
        rates_written: Number of rate edges upserted.
        refreshed_at: Timestamp stamped on the written edges.
    """

    quoted_symbols: list[str]
    rates_written: int
    refreshed_at: datetime
