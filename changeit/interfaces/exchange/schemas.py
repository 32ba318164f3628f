"""
Pydantic schemas for exchange API request/response validation.

These schemas enforce input validation and define the API contract.
Monetary fields are Decimal and serialize as JSON strings, never floats.
No business logic belongs here.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

SYMBOL_DESCRIPTION = "Currency symbol, e.g. BTC"
SYMBOL_MIN_LEN = 2
SYMBOL_MAX_LEN = 10


class ExchangeRateResponse(BaseModel):
    """Response schema for the rate quote endpoint."""

    from_currency: str
    to_currency: str
    rate: Decimal
    market_rate: Decimal


class ExecuteExchangeRequest(BaseModel):
    """Request schema for the exchange endpoint.

    Attributes:
        from_currency: Symbol to sell.
        to_currency: Symbol to buy.
        from_amount: Amount of ``from_currency`` to sell, fee included.
    """

    from_currency: str = Field(
        ...,
        min_length=SYMBOL_MIN_LEN,
        max_length=SYMBOL_MAX_LEN,
        description=SYMBOL_DESCRIPTION,
    )
    to_currency: str = Field(
        ...,
        min_length=SYMBOL_MIN_LEN,
        max_length=SYMBOL_MAX_LEN,
        description=SYMBOL_DESCRIPTION,
    )
    from_amount: Decimal = Field(..., gt=0, description="Amount to sell")


class ExecuteExchangeResponse(BaseModel):
    """Response schema for a completed exchange."""

    transaction_id: str
    from_currency: str
    to_currency: str
    from_amount: Decimal
    to_amount: Decimal
    rate: Decimal
    fee: Decimal


class BalanceItem(BaseModel):
    """A single balance in the response."""

    currency: str
    amount: Decimal
    updated_at: datetime | None = None


class BalancesResponse(BaseModel):
    """Response schema for the wallet listing endpoint."""

    balances: list[BalanceItem]


class FundMovementRequest(BaseModel):
    """Request schema for deposits and withdrawals."""

    currency: str = Field(
        ...,
        min_length=SYMBOL_MIN_LEN,
        max_length=SYMBOL_MAX_LEN,
        description=SYMBOL_DESCRIPTION,
    )
    amount: Decimal = Field(..., gt=0, description="Amount to move")


class FundMovementResponse(BaseModel):
    """Response schema for a completed deposit or withdrawal."""

    transaction_id: str
    currency: str
    amount: Decimal
    balance: Decimal


class TransactionItem(BaseModel):
    """A single transaction record in the response."""

    id: str
    kind: str
    status: str
    created_at: datetime
    from_currency: str | None = None
    to_currency: str | None = None
    from_amount: Decimal | None = None
    to_amount: Decimal | None = None
    rate: Decimal | None = None
    fee: Decimal | None = None
    failure_reason: str | None = None
    completed_at: datetime | None = None


class TransactionsResponse(BaseModel):
    """Response schema for transaction history endpoints."""

    transactions: list[TransactionItem]


class RefreshRatesResponse(BaseModel):
    """Response schema for the rate refresh endpoint."""

    quoted_symbols: list[str]
    rates_written: int
    refreshed_at: datetime


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    database: str


class ErrorResponse(BaseModel):
    """Standard error response returned by all error handlers."""

    error: str
    detail: str | None = None
