"""
Use case: Exchange one currency for another within a user's balances.

Input: ExecuteExchangeCommand (user_id, from_currency, to_currency, from_amount)
Output: ExchangeResult
Side effects: Appends a transaction record; debits the source balance and
    credits the destination balance.
Failure cases: InvalidRequestError, RateUnavailableError,
    InsufficientFundsError (no record), ExchangeFailedError (record failed).

Steps: validate, resolve the rate, check funds, create the record, then
settle (debit, credit, complete). Any failure once the record exists
leaves it failed.

Policy:
    - Exchanging a currency for itself is rejected as InvalidRequestError.
    - Requests without a rate path are rejected before any record exists.
    - The fee is taken in the source currency out of ``from_amount``:
      fee = from_amount * fee_rate, to_amount = from_amount * rate * (1 - fee_rate),
      and the source balance is debited exactly ``from_amount``.
"""

import logging
from decimal import Decimal, InvalidOperation

from changeit.application.exchange.dtos import ExchangeResult, ExecuteExchangeCommand
from changeit.application.exchange.retry import call_with_retry
from changeit.application.exchange.settlement import LedgerAction, LedgerStep, Settlement
from changeit.application.exchange.validation import (
    require_amount,
    require_symbol,
    require_user,
)
from changeit.domain.exchange import money
from changeit.domain.exchange.entities import (
    NewTransaction,
    TransactionKind,
    TransactionStatus,
)
from changeit.domain.exchange.errors import InsufficientFundsError, InvalidRequestError
from changeit.domain.exchange.ports import (
    BalanceRepository,
    CurrencyCatalogPort,
    TransactionRepository,
)
from changeit.domain.exchange.rate_resolver import RateResolver, apply_spread

logger = logging.getLogger(__name__)


class ExecuteExchangeUseCase:
    """Orchestrates one exchange across the resolver, ledger and log.

    Holds no state between calls; one instance may serve concurrent
    requests. Per-balance serialization is the ledger's job.

    Args:
        rate_resolver: Resolves the market rate for the pair.
        balance_repo: Per-user balance ledger.
        transaction_repo: Transaction log.
        catalog: Catalog of tradable symbols.
        fee_rate: Fraction of ``from_amount`` retained as fee.
        spread: Fractional discount applied to the market rate.
        retry_attempts: Attempts per storage call for transient failures.
    """

    def __init__(
        self,
        rate_resolver: RateResolver,
        balance_repo: BalanceRepository,
        transaction_repo: TransactionRepository,
        catalog: CurrencyCatalogPort,
        fee_rate: Decimal = money.ZERO,
        spread: Decimal = money.ZERO,
        retry_attempts: int = 2,
    ) -> None:
        if not (money.ZERO <= fee_rate < money.ONE):
            raise ValueError(f"fee_rate must be in [0, 1), got {fee_rate}")
        self._rate_resolver = rate_resolver
        self._balance_repo = balance_repo
        self._transaction_repo = transaction_repo
        self._catalog = catalog
        self._fee_rate = fee_rate
        self._spread = spread
        self._retry_attempts = retry_attempts
        self._settlement = Settlement(balance_repo, transaction_repo, retry_attempts)

    def execute(self, command: ExecuteExchangeCommand) -> ExchangeResult:
        """Run the exchange use case.

        Args:
            command: The exchange request.

        Returns:
            The completed exchange with its transaction id and amounts.

        Raises:
            InvalidRequestError: Malformed amount, unknown or identical currencies.
            RateUnavailableError: No rate path between the currencies.
            InsufficientFundsError: Source balance below ``from_amount``.
            ExchangeFailedError: Failure after the record was created.
        """
        user_id = require_user(command.user_id)
        from_currency = require_symbol(self._catalog, command.from_currency, "from_currency")
        to_currency = require_symbol(self._catalog, command.to_currency, "to_currency")
        from_amount = require_amount(command.from_amount, "from_amount")
        if from_currency == to_currency:
            raise InvalidRequestError("cannot exchange a currency for itself")

        market_rate = self._call(
            lambda: self._rate_resolver.resolve(from_currency, to_currency),
            f"resolve {from_currency}->{to_currency}",
        )
        rate = apply_spread(market_rate, self._spread)

        available = self._call(
            lambda: self._balance_repo.get_balance(user_id, from_currency),
            f"read {from_currency} balance",
        )
        if available < from_amount:
            logger.info(
                "Exchange rejected for user=%s: %s %s requested, %s available",
                user_id,
                from_amount,
                from_currency,
                available,
            )
            raise InsufficientFundsError(
                from_currency, money.format_decimal(from_amount), money.format_decimal(available)
            )

        try:
            fee = money.quantize_amount(money.multiply(from_amount, self._fee_rate))
            to_amount = money.quantize_amount(
                money.multiply(from_amount, rate, money.subtract(money.ONE, self._fee_rate))
            )
        except InvalidOperation:
            raise InvalidRequestError("from_amount is too large to convert") from None
        if to_amount <= money.ZERO:
            raise InvalidRequestError("from_amount is too small to convert")

        transaction_id = self._call(
            lambda: self._transaction_repo.create(
                NewTransaction(
                    user_id=user_id,
                    kind=TransactionKind.EXCHANGE,
                    status=TransactionStatus.PROCESSING,
                    from_currency=from_currency,
                    to_currency=to_currency,
                    from_amount=from_amount,
                    to_amount=to_amount,
                    rate=rate,
                    fee=fee,
                )
            ),
            "create exchange record",
        )
        logger.info(
            "Exchange %s started: user=%s %s %s -> %s %s (rate=%s fee=%s)",
            transaction_id,
            user_id,
            from_amount,
            from_currency,
            to_amount,
            to_currency,
            rate,
            fee,
        )

        # From here on the record must reach a terminal state.
        self._settlement.settle(
            transaction_id,
            [
                LedgerStep(LedgerAction.DEBIT, user_id, from_currency, from_amount),
                LedgerStep(LedgerAction.CREDIT, user_id, to_currency, to_amount),
            ],
        )

        logger.info("Exchange %s completed", transaction_id)
        return ExchangeResult(
            transaction_id=transaction_id,
            from_currency=from_currency,
            to_currency=to_currency,
            from_amount=from_amount,
            to_amount=to_amount,
            rate=rate,
            fee=fee,
        )

    def _call(self, operation, description: str):
        return call_with_retry(
            operation, attempts=self._retry_attempts, description=description
        )
