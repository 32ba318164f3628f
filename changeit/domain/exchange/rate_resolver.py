"""
Domain service: exchange rate resolution.

Resolves the rate for a (from, to) pair from a store of directed edges:

1. identity when from == to,
2. the direct edge from -> to,
3. the reciprocal of the inverse edge to -> from,
4. triangulation through the reference currency:
   rate(from -> REF) / rate(to -> REF).

Edges are not assumed symmetric. The store is injected; there is no
process-wide rate table.
"""

import logging
from decimal import Decimal
from typing import Optional

from changeit.domain.exchange import money
from changeit.domain.exchange.errors import RateUnavailableError
from changeit.domain.exchange.ports import ExchangeRateRepository

logger = logging.getLogger(__name__)


class RateResolver:
    """Looks up or derives the rate between two currencies.

    Args:
        rate_repo: Store of directed rate edges.
        reference_currency: Quote symbol used to triangulate missing edges.
    """

    def __init__(
        self, rate_repo: ExchangeRateRepository, reference_currency: str
    ) -> None:
        self._rate_repo = rate_repo
        self._reference = reference_currency

    @property
    def reference_currency(self) -> str:
        return self._reference

    def resolve(self, from_currency: str, to_currency: str) -> Decimal:
        """Return the positive rate converting ``from_currency`` into ``to_currency``.

        Raises:
            RateUnavailableError: If no direct, inverse or triangulated path exists.
        """
        if from_currency == to_currency:
            return money.ONE

        direct = self._usable(self._rate_repo.get_rate(from_currency, to_currency))
        if direct is not None:
            return direct

        inverse = self._usable(self._rate_repo.get_rate(to_currency, from_currency))
        if inverse is not None:
            reciprocal = money.quantize_rate(money.divide(money.ONE, inverse))
            if reciprocal > money.ZERO:
                return reciprocal

        triangulated = self._triangulate(from_currency, to_currency)
        if triangulated is not None:
            return triangulated

        logger.warning(
            "No exchange rate path: %s -> %s (ref=%s)",
            from_currency,
            to_currency,
            self._reference,
        )
        raise RateUnavailableError(from_currency, to_currency)

    def _triangulate(self, from_currency: str, to_currency: str) -> Optional[Decimal]:
        if self._reference in (from_currency, to_currency):
            # Direct and inverse lookups already covered the REF legs.
            return None
        from_ref = self._usable(self._rate_repo.get_rate(from_currency, self._reference))
        to_ref = self._usable(self._rate_repo.get_rate(to_currency, self._reference))
        if from_ref is None or to_ref is None:
            return None
        rate = money.quantize_rate(money.divide(from_ref, to_ref))
        return rate if rate > money.ZERO else None

    @staticmethod
    def _usable(rate: Optional[Decimal]) -> Optional[Decimal]:
        """Ignore non-positive edges; they can never price a trade."""
        if rate is None or rate <= money.ZERO:
            return None
        return rate


def apply_spread(rate: Decimal, spread: Decimal) -> Decimal:
    """Discount a looked-up rate by a fractional spread."""
    if spread <= money.ZERO:
        return rate
    return money.quantize_rate(money.multiply(rate, money.subtract(money.ONE, spread)))
