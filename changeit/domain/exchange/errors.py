"""
Domain-specific errors for the exchange bounded context.

All errors raised from the domain layer must be defined here.
These are mapped to HTTP responses at the interface layer.
No framework imports allowed.
"""


class ExchangeDomainError(Exception):
    """Base error for all exchange domain errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


class InvalidRequestError(ExchangeDomainError):
    """Raised when an exchange request is malformed.

    Covers missing fields, non-positive amounts, unknown currencies and
    same-currency trades. Always raised before any side effect.
    """

    def __init__(self, reason: str) -> None:
        super().__init__(f"Invalid request: {reason}")
        self.reason = reason


class UnknownCurrencyError(InvalidRequestError):
    """Raised when a symbol is not part of the currency catalog."""

    def __init__(self, symbol: str) -> None:
        super().__init__(f"unknown currency {symbol!r}")
        self.symbol = symbol


class InvalidAmountError(ExchangeDomainError):
    """Raised when a ledger mutation is given a zero or negative amount."""

    def __init__(self, amount: object) -> None:
        super().__init__(f"Invalid amount: {amount}. Must be greater than zero.")
        self.amount = amount


class RateUnavailableError(ExchangeDomainError):
    """Raised when no direct, inverse or triangulated rate exists."""

    def __init__(self, from_currency: str, to_currency: str) -> None:
        super().__init__(
            f"Exchange rate unavailable: {from_currency} -> {to_currency}"
        )
        self.from_currency = from_currency
        self.to_currency = to_currency


class InsufficientFundsError(ExchangeDomainError):
    """Raised when a balance lacks funds for a debit."""

    def __init__(self, currency: str, required: str, available: str) -> None:
        super().__init__(
            f"Insufficient {currency} funds: required {required}, available {available}"
        )
        self.currency = currency
        self.required = required
        self.available = available


class ExchangeFailedError(ExchangeDomainError):
    """Raised when a ledger operation fails after its transaction record exists.

    The record is left in the ``failed`` state for audit and any
    applied balance mutation has been compensated. Used for exchanges,
    deposits and withdrawals alike.
    """

    def __init__(self, transaction_id: str, reason: str) -> None:
        super().__init__(f"Transaction {transaction_id} failed: {reason}")
        self.transaction_id = transaction_id
        self.reason = reason


class TransactionNotFoundError(ExchangeDomainError):
    """Raised when a transaction record cannot be found."""

    def __init__(self, transaction_id: str) -> None:
        super().__init__(f"Transaction not found: {transaction_id}")
        self.transaction_id = transaction_id


class DuplicateTransactionError(ExchangeDomainError):
    """Raised when a caller-supplied transaction id already exists."""

    def __init__(self, transaction_id: str) -> None:
        super().__init__(f"Duplicate transaction id: {transaction_id}")
        self.transaction_id = transaction_id


class InvalidTransitionError(ExchangeDomainError):
    """Raised when a status transition is not allowed.

    Terminal records (completed, failed) never change again.
    """

    def __init__(self, transaction_id: str, current: str, target: str) -> None:
        super().__init__(
            f"Invalid transition for {transaction_id}: {current} -> {target}"
        )
        self.transaction_id = transaction_id
        self.current = current
        self.target = target


class TransientStorageError(ExchangeDomainError):
    """Raised by adapters when the storage layer is temporarily unavailable.

    Callers may retry the operation a bounded number of times.
    """

    def __init__(self, operation: str, reason: str = "") -> None:
        detail = f": {reason}" if reason else ""
        super().__init__(f"Storage unavailable during {operation}{detail}")
        self.operation = operation
        self.reason = reason


class ConcurrentModificationError(TransientStorageError):
    """Raised when a balance compare-and-swap keeps losing races."""

    def __init__(self, user_id: str, currency: str, attempts: int) -> None:
        super().__init__(
            "balance update",
            f"{user_id}/{currency} changed concurrently {attempts} times",
        )
        self.user_id = user_id
        self.currency = currency
        self.attempts = attempts
