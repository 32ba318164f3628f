"""
Adapter: Mock price feed.

Implements PriceFeedPort with fixed demo prices quoted in the reference
currency. Each fetch applies a bounded random variation to simulate
market movement. In production this adapter would call a market data
API instead.
"""

import logging
import random
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from changeit.domain.exchange import money
from changeit.domain.exchange.entities import PriceQuote
from changeit.domain.exchange.ports import PriceFeedPort

logger = logging.getLogger(__name__)

BASE_PRICES = {
    "BTC": Decimal("65430"),
    "ETH": Decimal("3200"),
    "USDT": Decimal("1"),
    "BNB": Decimal("520"),
    "XRP": Decimal("0.62"),
    "ADA": Decimal("0.45"),
    "SOL": Decimal("95"),
    "DOT": Decimal("8.5"),
}

# Jitter is drawn in millionths so the variation is an exact decimal.
_JITTER_SCALE = 1_000_000


class MockPriceFeedAdapter(PriceFeedPort):
    """Demo feed returning jittered base prices.

    Args:
        base_prices: Price per symbol in the reference currency.
        jitter: Max relative variation per fetch, e.g. 0.01 for ±1%.
        rng: Random source; pass a seeded instance for reproducible prices.
    """

    def __init__(
        self,
        base_prices: Optional[dict[str, Decimal]] = None,
        jitter: Decimal = Decimal("0.01"),
        rng: Optional[random.Random] = None,
    ) -> None:
        self._base_prices = dict(BASE_PRICES if base_prices is None else base_prices)
        self._jitter = jitter
        self._rng = rng or random.Random()

    def fetch_quotes(self, symbols: list[str]) -> list[PriceQuote]:
        """Return a jittered quote for every requested symbol the feed knows."""
        quoted_at = datetime.now(timezone.utc)
        quotes = []
        for symbol in symbols:
            base = self._base_prices.get(symbol)
            if base is None:
                logger.debug("No mock price for %s", symbol)
                continue
            quotes.append(
                PriceQuote(symbol=symbol, price=self._vary(base), quoted_at=quoted_at)
            )
        return quotes

    def _vary(self, price: Decimal) -> Decimal:
        if self._jitter <= money.ZERO:
            return price
        bound = int(self._jitter * _JITTER_SCALE)
        offset = Decimal(self._rng.randint(-bound, bound)) / _JITTER_SCALE
        return money.quantize_rate(money.multiply(price, money.add(money.ONE, offset)))
