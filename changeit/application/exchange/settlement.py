"""
Settlement of a recorded transaction against the balance ledger.

Once a transaction record exists, its balance mutations are applied in
order and the record is driven to exactly one terminal state. There is
no multi-statement atomicity across ledger rows, so every applied
mutation is paired with its inverse; on failure the inverses run in
reverse order before the record is marked failed. A failed record
therefore implies no net balance change.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from functools import partial

from changeit.application.exchange.retry import call_with_retry
from changeit.domain.exchange.entities import TransactionStatus
from changeit.domain.exchange.errors import (
    ExchangeFailedError,
    InsufficientFundsError,
    InvalidTransitionError,
    TransientStorageError,
)
from changeit.domain.exchange.ports import BalanceRepository, TransactionRepository

logger = logging.getLogger(__name__)


class LedgerAction(Enum):
    DEBIT = "debit"
    CREDIT = "credit"

    @property
    def inverse(self) -> "LedgerAction":
        return LedgerAction.CREDIT if self is LedgerAction.DEBIT else LedgerAction.DEBIT


@dataclass(frozen=True)
class LedgerStep:
    """One balance mutation belonging to a transaction."""

    action: LedgerAction
    user_id: str
    currency: str
    amount: Decimal

    def reversed(self) -> "LedgerStep":
        return LedgerStep(self.action.inverse, self.user_id, self.currency, self.amount)

    def describe(self) -> str:
        return f"{self.action.value} {self.amount} {self.currency}"


class Settlement:
    """Applies ledger steps for one transaction and finalizes its record.

    Args:
        balance_repo: Balance ledger.
        transaction_repo: Transaction log.
        retry_attempts: Attempts per storage call for transient failures.
    """

    def __init__(
        self,
        balance_repo: BalanceRepository,
        transaction_repo: TransactionRepository,
        retry_attempts: int,
    ) -> None:
        self._balance_repo = balance_repo
        self._transaction_repo = transaction_repo
        self._retry_attempts = retry_attempts

    def settle(self, transaction_id: str, steps: list[LedgerStep]) -> None:
        """Apply ``steps`` and mark the record completed.

        Raises:
            InsufficientFundsError: If a debit lost a race for the funds.
                The record is marked failed first.
            ExchangeFailedError: For any other failure. The record is
                marked failed and applied steps are compensated.
        """
        applied: list[LedgerStep] = []
        try:
            for step in steps:
                self._apply(step)
                applied.append(step)
                logger.debug("Transaction %s: %s applied", transaction_id, step.describe())
            self._call(
                lambda: self._transaction_repo.mark_completed(transaction_id),
                f"mark {transaction_id} completed",
            )
        except InsufficientFundsError as exc:
            self._abort(transaction_id, applied, exc.message)
            raise
        except Exception as exc:
            reason = getattr(exc, "message", None) or f"{type(exc).__name__}: {exc}"
            if len(applied) == len(steps) and self._already_completed(transaction_id):
                # The completion write landed even though the call reported an error.
                logger.warning(
                    "Transaction %s reported a completion error but is completed",
                    transaction_id,
                )
                return
            self._abort(transaction_id, applied, reason)
            raise ExchangeFailedError(transaction_id, reason) from exc

    def fail(self, transaction_id: str, reason: str) -> None:
        """Mark a record failed without any ledger work."""
        self._abort(transaction_id, [], reason)

    def _apply(self, step: LedgerStep) -> None:
        """Apply one balance mutation, retrying transient storage errors.

        Delivery is at-least-once: a mutation whose commit lands but whose
        call still reports a TransientStorageError is applied again on the
        retry. Balance updates carry no idempotency key, so the ledger
        cannot tell the second attempt from a new mutation.
        """
        if step.action is LedgerAction.DEBIT:
            mutate = self._balance_repo.debit
        else:
            mutate = self._balance_repo.credit
        operation = partial(mutate, step.user_id, step.currency, step.amount)
        self._call(operation, step.describe())

    def _call(self, operation, description: str):
        return call_with_retry(
            operation, attempts=self._retry_attempts, description=description
        )

    def _already_completed(self, transaction_id: str) -> bool:
        try:
            record = self._transaction_repo.get(transaction_id)
        except TransientStorageError:
            return False
        return record is not None and record.status is TransactionStatus.COMPLETED

    def _abort(self, transaction_id: str, applied: list[LedgerStep], reason: str) -> None:
        """Compensate applied steps in reverse order, then mark the record failed."""
        unrecovered: list[LedgerStep] = []
        for step in reversed(applied):
            compensation = step.reversed()
            try:
                self._apply(compensation)
                logger.info(
                    "Transaction %s: compensated with %s",
                    transaction_id,
                    compensation.describe(),
                )
            except Exception:
                logger.critical(
                    "Transaction %s: compensation %s failed; manual reconciliation required",
                    transaction_id,
                    compensation.describe(),
                    exc_info=True,
                )
                unrecovered.append(compensation)

        if unrecovered:
            pending = ", ".join(step.describe() for step in unrecovered)
            reason = f"{reason} (compensation incomplete: {pending})"

        try:
            self._call(
                lambda: self._transaction_repo.mark_failed(transaction_id, reason),
                f"mark {transaction_id} failed",
            )
        except InvalidTransitionError as exc:
            logger.error(
                "Transaction %s already terminal (%s); failure not recorded: %s",
                transaction_id,
                exc.current,
                reason,
            )
        except TransientStorageError:
            logger.critical(
                "Transaction %s left in processing; failure not recorded: %s",
                transaction_id,
                reason,
            )
        else:
            logger.warning("Transaction %s failed: %s", transaction_id, reason)
