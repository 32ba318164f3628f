"""
Use case: Quote the exchange rate between two currencies.

Input: GetExchangeRateQuery (from_currency, to_currency)
Output: ExchangeRateResult
Side effects: None (read-only query).
Failure cases: InvalidRequestError, RateUnavailableError.
"""

import logging
from decimal import Decimal

from changeit.application.exchange.dtos import ExchangeRateResult, GetExchangeRateQuery
from changeit.application.exchange.validation import require_symbol
from changeit.domain.exchange import money
from changeit.domain.exchange.ports import CurrencyCatalogPort
from changeit.domain.exchange.rate_resolver import RateResolver, apply_spread

logger = logging.getLogger(__name__)


class GetExchangeRateUseCase:
    """Resolves a rate quote, spread included.

    A quote for identical currencies is the identity rate 1; only the
    exchange executor refuses same-currency trades.
    """

    def __init__(
        self,
        rate_resolver: RateResolver,
        catalog: CurrencyCatalogPort,
        spread: Decimal = money.ZERO,
    ) -> None:
        self._rate_resolver = rate_resolver
        self._catalog = catalog
        self._spread = spread

    def execute(self, query: GetExchangeRateQuery) -> ExchangeRateResult:
        """Run the rate quote use case.

        Raises:
            InvalidRequestError: If either symbol is missing or unknown.
            RateUnavailableError: If no rate path exists.
        """
        from_currency = require_symbol(self._catalog, query.from_currency, "from_currency")
        to_currency = require_symbol(self._catalog, query.to_currency, "to_currency")

        market_rate = self._rate_resolver.resolve(from_currency, to_currency)
        if from_currency == to_currency:
            rate = market_rate
        else:
            rate = apply_spread(market_rate, self._spread)

        logger.debug("Quoted %s -> %s at %s", from_currency, to_currency, rate)
        return ExchangeRateResult(
            from_currency=from_currency,
            to_currency=to_currency,
            rate=rate,
            market_rate=market_rate,
        )
