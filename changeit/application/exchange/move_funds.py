"""
Use cases: Deposit funds into, and withdraw funds from, a balance.

Input: FundMovementCommand (user_id, currency, amount)
Output: FundMovementResult
Side effects: Appends a deposit/withdrawal record and mutates one balance.
Failure cases: InvalidRequestError, InsufficientFundsError (withdrawal),
    ExchangeFailedError (record failed).

Both follow the exchange lifecycle: the record is created in
processing, the balance is mutated, and the record ends completed or
failed with no net balance change.
"""

import logging

from changeit.application.exchange.dtos import FundMovementCommand, FundMovementResult
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
from changeit.domain.exchange.errors import InsufficientFundsError
from changeit.domain.exchange.ports import (
    BalanceRepository,
    CurrencyCatalogPort,
    TransactionRepository,
)

logger = logging.getLogger(__name__)


class _FundMovementUseCase:
    """Shared flow for single-balance movements."""

    kind: TransactionKind
    action: LedgerAction

    def __init__(
        self,
        balance_repo: BalanceRepository,
        transaction_repo: TransactionRepository,
        catalog: CurrencyCatalogPort,
        retry_attempts: int = 2,
    ) -> None:
        self._balance_repo = balance_repo
        self._transaction_repo = transaction_repo
        self._catalog = catalog
        self._retry_attempts = retry_attempts
        self._settlement = Settlement(balance_repo, transaction_repo, retry_attempts)

    def execute(self, command: FundMovementCommand) -> FundMovementResult:
        user_id = require_user(command.user_id)
        currency = require_symbol(self._catalog, command.currency, "currency")
        amount = require_amount(command.amount, "amount")

        self._precheck(user_id, currency, amount)

        transaction_id = call_with_retry(
            lambda: self._transaction_repo.create(self._record(user_id, currency, amount)),
            attempts=self._retry_attempts,
            description=f"create {self.kind.value} record",
        )
        self._settlement.settle(
            transaction_id, [LedgerStep(self.action, user_id, currency, amount)]
        )
        balance = call_with_retry(
            lambda: self._balance_repo.get_balance(user_id, currency),
            attempts=self._retry_attempts,
            description=f"read {currency} balance",
        )
        logger.info(
            "%s %s completed: user=%s %s %s",
            self.kind.value.capitalize(),
            transaction_id,
            user_id,
            amount,
            currency,
        )
        return FundMovementResult(
            transaction_id=transaction_id,
            currency=currency,
            amount=amount,
            balance=balance,
        )

    def _precheck(self, user_id: str, currency: str, amount) -> None:
        """Reject the request before any record exists."""

    def _record(self, user_id: str, currency: str, amount) -> NewTransaction:
        raise NotImplementedError


class DepositFundsUseCase(_FundMovementUseCase):
    """Credits an external deposit to a user's balance."""

    kind = TransactionKind.DEPOSIT
    action = LedgerAction.CREDIT

    def _record(self, user_id: str, currency: str, amount) -> NewTransaction:
        return NewTransaction(
            user_id=user_id,
            kind=self.kind,
            status=TransactionStatus.PROCESSING,
            to_currency=currency,
            to_amount=amount,
        )


class WithdrawFundsUseCase(_FundMovementUseCase):
    """Debits a withdrawal from a user's balance."""

    kind = TransactionKind.WITHDRAWAL
    action = LedgerAction.DEBIT

    def _precheck(self, user_id: str, currency: str, amount) -> None:
        available = call_with_retry(
            lambda: self._balance_repo.get_balance(user_id, currency),
            attempts=self._retry_attempts,
            description=f"read {currency} balance",
        )
        if available < amount:
            raise InsufficientFundsError(
                currency, money.format_decimal(amount), money.format_decimal(available)
            )

    def _record(self, user_id: str, currency: str, amount) -> NewTransaction:
        return NewTransaction(
            user_id=user_id,
            kind=self.kind,
            status=TransactionStatus.PROCESSING,
            from_currency=currency,
            from_amount=amount,
        )
