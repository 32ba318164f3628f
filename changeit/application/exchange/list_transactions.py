"""
Use case: Page through a user's transaction history.

Input: ListTransactionsQuery (user_id, limit, offset, optional kind)
Output: list[TransactionResult], most recent first
Side effects: None (read-only query).
Failure cases: InvalidRequestError for out-of-range paging.
"""

import logging

from changeit.application.exchange.dtos import ListTransactionsQuery, TransactionResult
from changeit.application.exchange.validation import require_user
from changeit.domain.exchange.errors import InvalidRequestError
from changeit.domain.exchange.ports import TransactionRepository

logger = logging.getLogger(__name__)

MIN_LIMIT = 1
MAX_LIMIT = 200


class ListTransactionsUseCase:
    """Orchestrates retrieving a user's transaction records."""

    def __init__(self, transaction_repo: TransactionRepository) -> None:
        self._transaction_repo = transaction_repo

    def execute(self, query: ListTransactionsQuery) -> list[TransactionResult]:
        """Run the list transactions use case.

        Raises:
            InvalidRequestError: If limit is outside 1-200 or offset is negative.
        """
        user_id = require_user(query.user_id)
        if not (MIN_LIMIT <= query.limit <= MAX_LIMIT):
            raise InvalidRequestError(f"limit must be between {MIN_LIMIT} and {MAX_LIMIT}")
        if query.offset < 0:
            raise InvalidRequestError("offset must not be negative")

        logger.info(
            "Listing transactions: user=%s, limit=%d, offset=%d, kind=%s",
            user_id,
            query.limit,
            query.offset,
            query.kind.value if query.kind else "all",
        )

        records = self._transaction_repo.list_for_user(
            user_id, limit=query.limit, offset=query.offset, kind=query.kind
        )
        return [TransactionResult.from_entity(record) for record in records]
