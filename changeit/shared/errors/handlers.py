"""
Centralized error handlers for FastAPI.

Maps exchange domain errors to HTTP responses.
No stack traces or internal details are exposed to clients.
All error responses use the ErrorResponse schema.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from changeit.domain.exchange.errors import (
    ExchangeDomainError,
    ExchangeFailedError,
    InsufficientFundsError,
    InvalidAmountError,
    InvalidRequestError,
    InvalidTransitionError,
    RateUnavailableError,
    TransactionNotFoundError,
    TransientStorageError,
)

logger = logging.getLogger(__name__)

HTTP_400 = 400
HTTP_404 = 404
HTTP_409 = 409
HTTP_500 = 500
HTTP_503 = 503


def _error_response(status_code: int, error: str, detail: str | None = None) -> JSONResponse:
    """Build a consistent JSON error response."""
    body: dict[str, str | None] = {"error": error}
    if detail:
        body["detail"] = detail
    return JSONResponse(status_code=status_code, content=body)


def register_error_handlers(app: FastAPI) -> None:
    """Register all domain error handlers on the FastAPI application.

    Args:
        app: The FastAPI application instance.
    """

    @app.exception_handler(InvalidRequestError)
    async def handle_invalid_request(
        _request: Request, exc: InvalidRequestError
    ) -> JSONResponse:
        """Handle malformed exchange requests."""
        logger.warning("Invalid request: %s", exc.reason)
        return _error_response(HTTP_400, "Invalid request", exc.reason)

    @app.exception_handler(InvalidAmountError)
    async def handle_invalid_amount(
        _request: Request, exc: InvalidAmountError
    ) -> JSONResponse:
        """Handle zero or negative amounts."""
        logger.warning("Invalid amount: %s", exc.amount)
        return _error_response(HTTP_400, "Invalid amount")

    @app.exception_handler(InsufficientFundsError)
    async def handle_insufficient_funds(
        _request: Request, exc: InsufficientFundsError
    ) -> JSONResponse:
        """Handle insufficient balance errors."""
        logger.warning("Insufficient funds: %s", exc.currency)
        return _error_response(HTTP_400, "Insufficient funds", exc.currency)

    @app.exception_handler(RateUnavailableError)
    async def handle_rate_unavailable(
        _request: Request, exc: RateUnavailableError
    ) -> JSONResponse:
        """Handle missing exchange rates."""
        logger.warning(
            "Rate unavailable: %s -> %s", exc.from_currency, exc.to_currency
        )
        return _error_response(
            HTTP_404,
            "Exchange rate unavailable",
            f"{exc.from_currency}/{exc.to_currency}",
        )

    @app.exception_handler(TransactionNotFoundError)
    async def handle_transaction_not_found(
        _request: Request, exc: TransactionNotFoundError
    ) -> JSONResponse:
        """Handle missing transaction records."""
        logger.warning("Transaction not found: %s", exc.transaction_id)
        return _error_response(HTTP_404, "Transaction not found")

    @app.exception_handler(InvalidTransitionError)
    async def handle_invalid_transition(
        _request: Request, exc: InvalidTransitionError
    ) -> JSONResponse:
        """Handle transitions out of a terminal state."""
        logger.warning(
            "Invalid transition: %s %s -> %s",
            exc.transaction_id,
            exc.current,
            exc.target,
        )
        return _error_response(HTTP_409, "Invalid transaction state")

    @app.exception_handler(ExchangeFailedError)
    async def handle_exchange_failed(
        _request: Request, exc: ExchangeFailedError
    ) -> JSONResponse:
        """Handle exchanges that failed after their record was created."""
        logger.error("Exchange failed: %s (%s)", exc.transaction_id, exc.reason)
        return _error_response(HTTP_500, "Exchange failed", exc.transaction_id)

    @app.exception_handler(TransientStorageError)
    async def handle_transient_storage(
        _request: Request, exc: TransientStorageError
    ) -> JSONResponse:
        """Handle storage outages that outlived the retry budget."""
        logger.error("Storage unavailable: %s", exc.operation)
        return _error_response(HTTP_503, "Service temporarily unavailable")

    @app.exception_handler(ExchangeDomainError)
    async def handle_exchange_domain(
        _request: Request, exc: ExchangeDomainError
    ) -> JSONResponse:
        """Catch-all for unhandled exchange domain errors."""
        logger.error("Unhandled exchange domain error: %s", exc.message)
        return _error_response(HTTP_500, "Internal server error")

    @app.exception_handler(Exception)
    async def handle_unexpected(
        _request: Request, exc: Exception
    ) -> JSONResponse:
        """Catch-all for unexpected errors. Never exposes internals."""
        logger.exception("Unexpected error: %s", type(exc).__name__)
        return _error_response(HTTP_500, "Internal server error")
