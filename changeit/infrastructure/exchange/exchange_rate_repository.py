"""
Adapter: Exchange rate store.

Implements ExchangeRateRepository port.
Reads/writes the exchange_rates table (one row per directed edge).
"""

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine

from changeit.domain.exchange import money
from changeit.domain.exchange.entities import ExchangeRate
from changeit.domain.exchange.ports import ExchangeRateRepository
from changeit.infrastructure.exchange.database import (
    format_timestamp,
    parse_timestamp,
    storage_errors,
)

logger = logging.getLogger(__name__)


class ExchangeRateRepositoryAdapter(ExchangeRateRepository):
    """SQL adapter for the exchange_rates table."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def get_rate(self, from_currency: str, to_currency: str) -> Optional[Decimal]:
        """Return the stored rate for the edge, or None."""
        query = text(
            """
            SELECT rate
            FROM exchange_rates
            WHERE from_currency = :from_currency AND to_currency = :to_currency
            """
        )
        with storage_errors("read exchange rate"):
            with self._engine.connect() as conn:
                row = conn.execute(
                    query, {"from_currency": from_currency, "to_currency": to_currency}
                ).fetchone()
        if row is None:
            return None
        return money.to_decimal(row[0])

    def save_rates(self, rates: list[ExchangeRate]) -> int:
        """Upsert rate edges in a single transaction."""
        if not rates:
            return 0

        query = text(
            """
            INSERT INTO exchange_rates (from_currency, to_currency, rate, updated_at)
            VALUES (:from_currency, :to_currency, :rate, :updated_at)
            ON CONFLICT (from_currency, to_currency)
            DO UPDATE SET
                rate = excluded.rate,
                updated_at = excluded.updated_at
            """
        )
        values = [
            {
                "from_currency": rate.from_currency,
                "to_currency": rate.to_currency,
                "rate": money.format_decimal(rate.rate),
                "updated_at": format_timestamp(rate.updated_at),
            }
            for rate in rates
        ]
        with storage_errors("save exchange rates"):
            with self._engine.begin() as conn:
                conn.execute(query, values)

        logger.debug("Saved %d exchange rate edges", len(values))
        return len(values)

    def list_rates(self) -> list[ExchangeRate]:
        """Return every stored edge ordered by (from, to)."""
        query = text(
            """
            SELECT from_currency, to_currency, rate, updated_at
            FROM exchange_rates
            ORDER BY from_currency ASC, to_currency ASC
            """
        )
        with storage_errors("list exchange rates"):
            with self._engine.connect() as conn:
                rows = conn.execute(query).fetchall()

        return [
            ExchangeRate(
                from_currency=r[0],
                to_currency=r[1],
                rate=money.to_decimal(r[2]),
                updated_at=parse_timestamp(r[3]),
            )
            for r in rows
        ]
