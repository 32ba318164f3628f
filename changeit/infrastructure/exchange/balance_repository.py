"""
Adapter: Balance ledger.

Implements BalanceRepository port on the ``balances`` table.

Each (user_id, currency) row carries a ``version`` counter. Mutations
read the row, compute the new amount in Python with ``Decimal``, and
write it back with ``WHERE version = :expected``. A write that matches
no row lost a race: the loop re-reads and re-validates, so two
concurrent debits can never both succeed against the same funds. Rows
are created lazily on first credit; a lost creation race surfaces as an
IntegrityError on the primary key and is retried as an update.
"""

import logging
from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from changeit.domain.exchange import money
from changeit.domain.exchange.entities import Balance
from changeit.domain.exchange.errors import (
    ConcurrentModificationError,
    InsufficientFundsError,
    InvalidAmountError,
)
from changeit.domain.exchange.ports import BalanceRepository
from changeit.infrastructure.exchange.database import (
    format_timestamp,
    parse_timestamp,
    storage_errors,
    utcnow,
)

logger = logging.getLogger(__name__)

DEFAULT_CAS_ATTEMPTS = 10


class BalanceRepositoryAdapter(BalanceRepository):
    """SQL implementation of the per-user balance ledger.

    Args:
        engine: SQLAlchemy engine of the ledger database.
        cas_attempts: Compare-and-swap attempts before giving up.
    """

    def __init__(self, engine: Engine, cas_attempts: int = DEFAULT_CAS_ATTEMPTS) -> None:
        self._engine = engine
        self._cas_attempts = cas_attempts

    def get_balance(self, user_id: str, currency: str) -> Decimal:
        """Return the balance amount, 0 when no row exists."""
        row = self._read(user_id, currency)
        if row is None:
            return money.ZERO
        return money.to_decimal(row[0])

    def list_balances(self, user_id: str) -> list[Balance]:
        """Return all balances held by a user, ordered by currency."""
        query = text(
            """
            SELECT user_id, currency, amount, updated_at
            FROM balances
            WHERE user_id = :user_id
            ORDER BY currency ASC
            """
        )
        with storage_errors("list balances"):
            with self._engine.connect() as conn:
                rows = conn.execute(query, {"user_id": user_id}).fetchall()

        return [
            Balance(
                user_id=row[0],
                currency=row[1],
                amount=money.to_decimal(row[2]),
                updated_at=parse_timestamp(row[3]),
            )
            for row in rows
        ]

    def debit(self, user_id: str, currency: str, amount: Decimal) -> Decimal:
        """Atomically subtract ``amount``; never lets the balance go negative."""
        self._require_positive(amount)
        for attempt in range(1, self._cas_attempts + 1):
            row = self._read(user_id, currency)
            current = money.ZERO if row is None else money.to_decimal(row[0])
            if row is None or current < amount:
                raise InsufficientFundsError(
                    currency, money.format_decimal(amount), money.format_decimal(current)
                )
            new_amount = money.subtract(current, amount)
            if self._compare_and_swap(user_id, currency, row[1], new_amount):
                logger.debug(
                    "Debited %s %s from user=%s (attempt %d)", amount, currency, user_id, attempt
                )
                return new_amount
        raise ConcurrentModificationError(user_id, currency, self._cas_attempts)

    def credit(self, user_id: str, currency: str, amount: Decimal) -> Decimal:
        """Atomically add ``amount``, creating the balance row on first use."""
        self._require_positive(amount)
        for attempt in range(1, self._cas_attempts + 1):
            row = self._read(user_id, currency)
            if row is None:
                if self._insert(user_id, currency, amount):
                    logger.debug(
                        "Opened %s balance for user=%s with %s", currency, user_id, amount
                    )
                    return amount
                continue
            new_amount = money.add(money.to_decimal(row[0]), amount)
            if self._compare_and_swap(user_id, currency, row[1], new_amount):
                logger.debug(
                    "Credited %s %s to user=%s (attempt %d)", amount, currency, user_id, attempt
                )
                return new_amount
        raise ConcurrentModificationError(user_id, currency, self._cas_attempts)

    @staticmethod
    def _require_positive(amount: Decimal) -> None:
        if amount is None or amount <= money.ZERO:
            raise InvalidAmountError(amount)

    def _read(self, user_id: str, currency: str):
        query = text(
            """
            SELECT amount, version
            FROM balances
            WHERE user_id = :user_id AND currency = :currency
            """
        )
        with storage_errors("read balance"):
            with self._engine.connect() as conn:
                return conn.execute(
                    query, {"user_id": user_id, "currency": currency}
                ).fetchone()

    def _compare_and_swap(
        self, user_id: str, currency: str, expected_version: int, new_amount: Decimal
    ) -> bool:
        """Write ``new_amount`` only if nobody changed the row since it was read."""
        query = text(
            """
            UPDATE balances
            SET amount = :amount,
                version = version + 1,
                updated_at = :updated_at
            WHERE user_id = :user_id
              AND currency = :currency
              AND version = :version
            """
        )
        with storage_errors("update balance"):
            with self._engine.begin() as conn:
                result = conn.execute(
                    query,
                    {
                        "amount": money.format_decimal(new_amount),
                        "updated_at": format_timestamp(utcnow()),
                        "user_id": user_id,
                        "currency": currency,
                        "version": expected_version,
                    },
                )
                swapped = result.rowcount == 1
        if not swapped:
            logger.debug("Balance %s/%s changed concurrently; retrying", user_id, currency)
            return False
        return True

    def _insert(self, user_id: str, currency: str, amount: Decimal) -> bool:
        """Create the balance row; False if another writer created it first."""
        query = text(
            """
            INSERT INTO balances (user_id, currency, amount, version, created_at, updated_at)
            VALUES (:user_id, :currency, :amount, 0, :now, :now)
            """
        )
        now = format_timestamp(utcnow())
        try:
            with storage_errors("create balance"):
                with self._engine.begin() as conn:
                    conn.execute(
                        query,
                        {
                            "user_id": user_id,
                            "currency": currency,
                            "amount": money.format_decimal(amount),
                            "now": now,
                        },
                    )
        except IntegrityError:
            logger.debug("Balance %s/%s created concurrently; retrying", user_id, currency)
            return False
        return True
