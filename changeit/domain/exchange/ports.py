"""
Port interfaces (ABCs) for the exchange bounded context.

Ports define the contracts that the domain requires from the outside world.
Infrastructure adapters implement these interfaces.
The domain layer never depends on concrete implementations.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional

from changeit.domain.exchange.entities import (
    Balance,
    ExchangeRate,
    NewTransaction,
    PriceQuote,
    Transaction,
    TransactionKind,
)


class ExchangeRateRepository(ABC):
    """Port for reading and publishing directed rate edges."""

    @abstractmethod
    def get_rate(self, from_currency: str, to_currency: str) -> Optional[Decimal]:
        """Return the stored rate for the edge, or None if absent."""
        raise NotImplementedError

    @abstractmethod
    def save_rates(self, rates: list[ExchangeRate]) -> int:
        """Upsert rate edges.

        Args:
            rates: Edges to insert or replace, keyed by (from, to).

        Returns:
            Number of edges written.
        """
        raise NotImplementedError

    @abstractmethod
    def list_rates(self) -> list[ExchangeRate]:
        """Return every stored edge ordered by (from, to)."""
        raise NotImplementedError


class BalanceRepository(ABC):
    """Port for the per-user, per-currency balance ledger.

    Every mutation on one (user, currency) pair must be linearizable:
    two concurrent debits must never jointly overdraw a balance.
    """

    @abstractmethod
    def get_balance(self, user_id: str, currency: str) -> Decimal:
        """Return the balance amount, 0 when no row exists.

        Reading never creates a row.
        """
        raise NotImplementedError

    @abstractmethod
    def list_balances(self, user_id: str) -> list[Balance]:
        """Return all balances held by a user, ordered by currency."""
        raise NotImplementedError

    @abstractmethod
    def debit(self, user_id: str, currency: str, amount: Decimal) -> Decimal:
        """Atomically subtract ``amount`` and return the new balance.

        Raises:
            InvalidAmountError: If amount <= 0.
            InsufficientFundsError: If amount exceeds the current balance.
            ConcurrentModificationError: If the update kept losing races.
        """
        raise NotImplementedError

    @abstractmethod
    def credit(self, user_id: str, currency: str, amount: Decimal) -> Decimal:
        """Atomically add ``amount`` (creating the row) and return the new balance.

        Raises:
            InvalidAmountError: If amount <= 0.
            ConcurrentModificationError: If the update kept losing races.
        """
        raise NotImplementedError


class TransactionRepository(ABC):
    """Port for the append-only transaction log."""

    @abstractmethod
    def create(self, record: NewTransaction) -> str:
        """Append a record in an open status and return its id.

        Raises:
            DuplicateTransactionError: If a caller-supplied id already exists.
        """
        raise NotImplementedError

    @abstractmethod
    def get(self, transaction_id: str) -> Optional[Transaction]:
        """Return a record by id, or None if not found."""
        raise NotImplementedError

    @abstractmethod
    def mark_processing(self, transaction_id: str) -> None:
        """Move a pending record to processing.

        Raises:
            InvalidTransitionError: If the record is not pending.
            TransactionNotFoundError: If the record does not exist.
        """
        raise NotImplementedError

    @abstractmethod
    def mark_completed(self, transaction_id: str) -> None:
        """Terminal transition to completed; sets ``completed_at``.

        Raises:
            InvalidTransitionError: If the record is already terminal.
            TransactionNotFoundError: If the record does not exist.
        """
        raise NotImplementedError

    @abstractmethod
    def mark_failed(self, transaction_id: str, reason: str) -> None:
        """Terminal transition to failed; records the reason.

        Raises:
            InvalidTransitionError: If the record is already terminal.
            TransactionNotFoundError: If the record does not exist.
        """
        raise NotImplementedError

    @abstractmethod
    def list_for_user(
        self,
        user_id: str,
        limit: int = 50,
        offset: int = 0,
        kind: Optional[TransactionKind] = None,
    ) -> list[Transaction]:
        """Return a user's records, most recent first, ties broken by id."""
        raise NotImplementedError


class CurrencyCatalogPort(ABC):
    """Port for the catalog of tradable currency symbols."""

    @abstractmethod
    def list_symbols(self) -> list[str]:
        """Return all supported symbols."""
        raise NotImplementedError

    @abstractmethod
    def is_supported(self, symbol: str) -> bool:
        """Return True if the symbol can be traded."""
        raise NotImplementedError


class PriceFeedPort(ABC):
    """Port for an external price source quoting in the reference currency."""

    @abstractmethod
    def fetch_quotes(self, symbols: list[str]) -> list[PriceQuote]:
        """Return the latest quote for each symbol the feed knows."""
        raise NotImplementedError
