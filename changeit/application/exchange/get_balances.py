"""
Use cases: Read a user's balances.

Input: GetBalanceQuery (user_id, currency) or a user id
Output: BalanceResult / list[BalanceResult]
Side effects: None. Reading never creates a balance row.
Failure cases: InvalidRequestError.
"""

import logging

from changeit.application.exchange.dtos import BalanceResult, GetBalanceQuery
from changeit.application.exchange.validation import require_symbol, require_user
from changeit.domain.exchange.ports import BalanceRepository, CurrencyCatalogPort

logger = logging.getLogger(__name__)


class GetBalanceUseCase:
    """Returns one balance, 0 when the user never held the currency."""

    def __init__(self, balance_repo: BalanceRepository, catalog: CurrencyCatalogPort) -> None:
        self._balance_repo = balance_repo
        self._catalog = catalog

    def execute(self, query: GetBalanceQuery) -> BalanceResult:
        user_id = require_user(query.user_id)
        currency = require_symbol(self._catalog, query.currency, "currency")
        amount = self._balance_repo.get_balance(user_id, currency)
        return BalanceResult(currency=currency, amount=amount)


class ListBalancesUseCase:
    """Returns every balance row a user holds, ordered by currency."""

    def __init__(self, balance_repo: BalanceRepository) -> None:
        self._balance_repo = balance_repo

    def execute(self, user_id: str) -> list[BalanceResult]:
        user_id = require_user(user_id)
        balances = self._balance_repo.list_balances(user_id)
        logger.debug("Listed %d balances for user=%s", len(balances), user_id)
        return [
            BalanceResult(
                currency=balance.currency,
                amount=balance.amount,
                updated_at=balance.updated_at,
            )
            for balance in balances
        ]
