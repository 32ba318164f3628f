"""
Use case: Refresh stored exchange rates from the price feed.

Input: None (the catalog defines which symbols are quoted)
Output: RefreshRatesResult
Side effects: Upserts rate edges in the rate store.
Failure cases: Errors from the price feed or the store propagate.

Called by an external scheduler; the core owns no timers.
"""

import logging
from datetime import datetime, timezone

from changeit.application.exchange.dtos import RefreshRatesResult
from changeit.domain.exchange import money
from changeit.domain.exchange.entities import ExchangeRate, PriceQuote
from changeit.domain.exchange.ports import (
    CurrencyCatalogPort,
    ExchangeRateRepository,
    PriceFeedPort,
)

logger = logging.getLogger(__name__)


class RefreshRatesUseCase:
    """Publishes rate edges derived from reference-currency prices.

    Every quoted symbol gets a ``symbol -> REF`` edge equal to its price.
    With ``publish_cross_rates`` every ordered pair of quoted symbols
    also gets a direct edge ``price(a) / price(b)``.

    Args:
        price_feed: Source of prices in the reference currency.
        rate_repo: Store receiving the edges.
        catalog: Catalog of tradable symbols.
        reference_currency: Quote symbol of the feed.
        publish_cross_rates: Also write the full cross matrix.
    """

    def __init__(
        self,
        price_feed: PriceFeedPort,
        rate_repo: ExchangeRateRepository,
        catalog: CurrencyCatalogPort,
        reference_currency: str,
        publish_cross_rates: bool = True,
    ) -> None:
        self._price_feed = price_feed
        self._rate_repo = rate_repo
        self._catalog = catalog
        self._reference = reference_currency
        self._publish_cross_rates = publish_cross_rates

    def execute(self) -> RefreshRatesResult:
        """Run the rate refresh use case."""
        symbols = [s for s in self._catalog.list_symbols() if s != self._reference]
        quotes = [
            quote
            for quote in self._price_feed.fetch_quotes(symbols)
            if quote.symbol in symbols and quote.price > money.ZERO
        ]
        refreshed_at = datetime.now(timezone.utc)

        rates = [
            ExchangeRate(
                from_currency=quote.symbol,
                to_currency=self._reference,
                rate=quote.price,
                updated_at=refreshed_at,
            )
            for quote in quotes
        ]
        if self._publish_cross_rates:
            rates.extend(self._cross_rates(quotes, refreshed_at))

        written = self._rate_repo.save_rates(rates) if rates else 0
        logger.info(
            "Refreshed %d rate edges from %d quotes (ref=%s)",
            written,
            len(quotes),
            self._reference,
        )
        return RefreshRatesResult(
            quoted_symbols=[quote.symbol for quote in quotes],
            rates_written=written,
            refreshed_at=refreshed_at,
        )

    @staticmethod
    def _cross_rates(
        quotes: list[PriceQuote], refreshed_at: datetime
    ) -> list[ExchangeRate]:
        rates = []
        for base in quotes:
            for other in quotes:
                if base.symbol == other.symbol:
                    continue
                rates.append(
                    ExchangeRate(
                        from_currency=base.symbol,
                        to_currency=other.symbol,
                        rate=money.quantize_rate(money.divide(base.price, other.price)),
                        updated_at=refreshed_at,
                    )
                )
        return rates
