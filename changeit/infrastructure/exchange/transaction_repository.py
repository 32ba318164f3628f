"""
Adapter: Transaction log.

Implements TransactionRepository port on the ``transactions`` table.
Status transitions are single conditional UPDATEs guarded by the
allowed source states, so a terminal record can never be reopened even
under concurrent writers.
"""

import logging
from typing import Optional
from uuid import uuid4

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from changeit.domain.exchange import money
from changeit.domain.exchange.entities import (
    OPEN_STATUSES,
    NewTransaction,
    Transaction,
    TransactionKind,
    TransactionStatus,
)
from changeit.domain.exchange.errors import (
    DuplicateTransactionError,
    InvalidTransitionError,
    TransactionNotFoundError,
)
from changeit.domain.exchange.ports import TransactionRepository
from changeit.infrastructure.exchange.database import (
    format_timestamp,
    parse_timestamp,
    storage_errors,
    utcnow,
)

logger = logging.getLogger(__name__)

_COLUMNS = """
    id, user_id, kind, status, from_currency, to_currency, from_amount,
    to_amount, rate, fee, failure_reason, created_at, completed_at
"""


def _decimal_or_none(value) -> Optional[str]:
    return None if value is None else money.format_decimal(value)


def _row_to_transaction(row) -> Transaction:
    return Transaction(
        id=row[0],
        user_id=row[1],
        kind=TransactionKind(row[2]),
        status=TransactionStatus(row[3]),
        from_currency=row[4],
        to_currency=row[5],
        from_amount=None if row[6] is None else money.to_decimal(row[6]),
        to_amount=None if row[7] is None else money.to_decimal(row[7]),
        rate=None if row[8] is None else money.to_decimal(row[8]),
        fee=None if row[9] is None else money.to_decimal(row[9]),
        failure_reason=row[10],
        created_at=parse_timestamp(row[11]),
        completed_at=parse_timestamp(row[12]),
    )


class TransactionRepositoryAdapter(TransactionRepository):
    """SQL implementation of the append-only transaction log."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def create(self, record: NewTransaction) -> str:
        """Append a record and return its id.

        Raises:
            DuplicateTransactionError: If a caller-supplied id already exists.
            ValueError: If the record is not in an open status.
        """
        if record.status not in OPEN_STATUSES:
            raise ValueError(f"New records must be open, got {record.status.value}")

        transaction_id = record.id or uuid4().hex
        query = text(
            f"""
            INSERT INTO transactions ({_COLUMNS})
            VALUES (:id, :user_id, :kind, :status, :from_currency, :to_currency,
                    :from_amount, :to_amount, :rate, :fee, NULL, :created_at, NULL)
            """
        )
        params = {
            "id": transaction_id,
            "user_id": record.user_id,
            "kind": record.kind.value,
            "status": record.status.value,
            "from_currency": record.from_currency,
            "to_currency": record.to_currency,
            "from_amount": _decimal_or_none(record.from_amount),
            "to_amount": _decimal_or_none(record.to_amount),
            "rate": _decimal_or_none(record.rate),
            "fee": _decimal_or_none(record.fee),
            "created_at": format_timestamp(utcnow()),
        }
        try:
            with storage_errors("create transaction"):
                with self._engine.begin() as conn:
                    conn.execute(query, params)
        except IntegrityError as exc:
            raise DuplicateTransactionError(transaction_id) from exc

        logger.debug(
            "Created %s transaction %s for user=%s",
            record.kind.value,
            transaction_id,
            record.user_id,
        )
        return transaction_id

    def get(self, transaction_id: str) -> Optional[Transaction]:
        """Return a record by id, or None if not found."""
        query = text(f"SELECT {_COLUMNS} FROM transactions WHERE id = :id")
        with storage_errors("read transaction"):
            with self._engine.connect() as conn:
                row = conn.execute(query, {"id": transaction_id}).fetchone()
        return None if row is None else _row_to_transaction(row)

    def mark_processing(self, transaction_id: str) -> None:
        self._transition(
            transaction_id,
            TransactionStatus.PROCESSING,
            allowed_from=(TransactionStatus.PENDING,),
        )

    def mark_completed(self, transaction_id: str) -> None:
        self._transition(
            transaction_id,
            TransactionStatus.COMPLETED,
            allowed_from=tuple(OPEN_STATUSES),
        )

    def mark_failed(self, transaction_id: str, reason: str) -> None:
        self._transition(
            transaction_id,
            TransactionStatus.FAILED,
            allowed_from=tuple(OPEN_STATUSES),
            failure_reason=reason,
        )

    def list_for_user(
        self,
        user_id: str,
        limit: int = 50,
        offset: int = 0,
        kind: Optional[TransactionKind] = None,
    ) -> list[Transaction]:
        """Return a user's records, most recent first, ties broken by id."""
        query = f"SELECT {_COLUMNS} FROM transactions WHERE user_id = :user_id"
        params: dict = {"user_id": user_id, "limit": limit, "offset": offset}
        if kind is not None:
            query += " AND kind = :kind"
            params["kind"] = kind.value
        query += " ORDER BY created_at DESC, id DESC LIMIT :limit OFFSET :offset"

        with storage_errors("list transactions"):
            with self._engine.connect() as conn:
                rows = conn.execute(text(query), params).fetchall()
        return [_row_to_transaction(row) for row in rows]

    def _transition(
        self,
        transaction_id: str,
        target: TransactionStatus,
        allowed_from: tuple[TransactionStatus, ...],
        failure_reason: Optional[str] = None,
    ) -> None:
        """Move a record to ``target`` iff its current status is allowed."""
        allowed = {f"allowed_{i}": status.value for i, status in enumerate(allowed_from)}
        placeholders = ", ".join(f":{name}" for name in allowed)
        completed_at = format_timestamp(utcnow()) if target.is_terminal else None
        query = text(
            f"""
            UPDATE transactions
            SET status = :target,
                completed_at = COALESCE(:completed_at, completed_at),
                failure_reason = COALESCE(:failure_reason, failure_reason)
            WHERE id = :id AND status IN ({placeholders})
            """
        )
        with storage_errors(f"mark transaction {target.value}"):
            with self._engine.begin() as conn:
                result = conn.execute(
                    query,
                    {
                        "target": target.value,
                        "completed_at": completed_at,
                        "failure_reason": failure_reason,
                        "id": transaction_id,
                        **allowed,
                    },
                )
                updated = result.rowcount == 1
        if updated:
            logger.debug("Transaction %s -> %s", transaction_id, target.value)
            return

        current = self.get(transaction_id)
        if current is None:
            raise TransactionNotFoundError(transaction_id)
        raise InvalidTransitionError(transaction_id, current.status.value, target.value)
