"""
FastAPI router for the exchange bounded context.

All routes delegate to use cases. No business logic here.
Input validation is handled by Pydantic schemas.
Error mapping is handled by centralized error handlers.
The authenticated user id comes from the X-User-Id header set by the
auth gateway.
"""

from fastapi import APIRouter, Depends, Query, Request

from changeit.application.exchange.dtos import (
    BalanceResult,
    ExecuteExchangeCommand,
    FundMovementCommand,
    FundMovementResult,
    GetBalanceQuery,
    GetExchangeRateQuery,
    ListTransactionsQuery,
    TransactionResult,
)
from changeit.application.exchange.execute_exchange import ExecuteExchangeUseCase
from changeit.application.exchange.get_balances import GetBalanceUseCase, ListBalancesUseCase
from changeit.application.exchange.get_exchange_rate import GetExchangeRateUseCase
from changeit.application.exchange.list_transactions import ListTransactionsUseCase
from changeit.application.exchange.move_funds import DepositFundsUseCase, WithdrawFundsUseCase
from changeit.application.exchange.refresh_rates import RefreshRatesUseCase
from changeit.core.config import settings
from changeit.domain.exchange.entities import TransactionKind
from changeit.interfaces.exchange.dependencies import (
    get_balance_use_case,
    get_current_user_id,
    get_deposit_funds_use_case,
    get_exchange_rate_use_case,
    get_execute_exchange_use_case,
    get_list_balances_use_case,
    get_list_transactions_use_case,
    get_refresh_rates_use_case,
    get_withdraw_funds_use_case,
)
from changeit.interfaces.exchange.schemas import (
    BalanceItem,
    BalancesResponse,
    ErrorResponse,
    ExchangeRateResponse,
    ExecuteExchangeRequest,
    ExecuteExchangeResponse,
    FundMovementRequest,
    FundMovementResponse,
    RefreshRatesResponse,
    TransactionItem,
    TransactionsResponse,
)
from changeit.shared.security.rate_limiting import limiter

router = APIRouter(tags=["exchange"])


def _balance_item(result: BalanceResult) -> BalanceItem:
    return BalanceItem(
        currency=result.currency,
        amount=result.amount,
        updated_at=result.updated_at,
    )


def _transaction_item(result: TransactionResult) -> TransactionItem:
    return TransactionItem(
        id=result.id,
        kind=result.kind,
        status=result.status,
        created_at=result.created_at,
        from_currency=result.from_currency,
        to_currency=result.to_currency,
        from_amount=result.from_amount,
        to_amount=result.to_amount,
        rate=result.rate,
        fee=result.fee,
        failure_reason=result.failure_reason,
        completed_at=result.completed_at,
    )


def _movement_response(result: FundMovementResult) -> FundMovementResponse:
    return FundMovementResponse(
        transaction_id=result.transaction_id,
        currency=result.currency,
        amount=result.amount,
        balance=result.balance,
    )


@router.get(
    "/exchange/rate/{from_currency}/{to_currency}",
    response_model=ExchangeRateResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Quote an exchange rate",
    description="Resolve the rate between two currencies, spread included.",
)
def get_exchange_rate(
    from_currency: str,
    to_currency: str,
    use_case: GetExchangeRateUseCase = Depends(get_exchange_rate_use_case),
) -> ExchangeRateResponse:
    """Quote the rate for a currency pair."""
    result = use_case.execute(
        GetExchangeRateQuery(from_currency=from_currency, to_currency=to_currency)
    )
    return ExchangeRateResponse(
        from_currency=result.from_currency,
        to_currency=result.to_currency,
        rate=result.rate,
        market_rate=result.market_rate,
    )


@router.post(
    "/exchange/execute",
    response_model=ExecuteExchangeResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    summary="Execute an exchange",
    description="Sell one currency for another from the caller's balances.",
)
@limiter.limit(settings.rate_limit_heavy)
def execute_exchange(
    request: Request,
    body: ExecuteExchangeRequest,
    user_id: str = Depends(get_current_user_id),
    use_case: ExecuteExchangeUseCase = Depends(get_execute_exchange_use_case),
) -> ExecuteExchangeResponse:
    """Execute an exchange for the authenticated user."""
    result = use_case.execute(
        ExecuteExchangeCommand(
            user_id=user_id,
            from_currency=body.from_currency,
            to_currency=body.to_currency,
            from_amount=body.from_amount,
        )
    )
    return ExecuteExchangeResponse(
        transaction_id=result.transaction_id,
        from_currency=result.from_currency,
        to_currency=result.to_currency,
        from_amount=result.from_amount,
        to_amount=result.to_amount,
        rate=result.rate,
        fee=result.fee,
    )


@router.get(
    "/exchange/history",
    response_model=TransactionsResponse,
    summary="Exchange history",
    description="Most recent exchanges of the caller.",
)
def get_exchange_history(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    user_id: str = Depends(get_current_user_id),
    use_case: ListTransactionsUseCase = Depends(get_list_transactions_use_case),
) -> TransactionsResponse:
    """List the caller's exchange transactions."""
    results = use_case.execute(
        ListTransactionsQuery(
            user_id=user_id, limit=limit, offset=offset, kind=TransactionKind.EXCHANGE
        )
    )
    return TransactionsResponse(transactions=[_transaction_item(r) for r in results])


@router.post(
    "/exchange/rates/refresh",
    response_model=RefreshRatesResponse,
    summary="Refresh exchange rates",
    description=(
        "Scheduler-only endpoint: pull prices from the feed and republish "
        "rate edges. Needs no caller identity; keep it off the public network."
    ),
)
@limiter.limit(settings.rate_limit_heavy)
def refresh_rates(
    request: Request,
    use_case: RefreshRatesUseCase = Depends(get_refresh_rates_use_case),
) -> RefreshRatesResponse:
    """Trigger a rate refresh (called by the external scheduler)."""
    result = use_case.execute()
    return RefreshRatesResponse(
        quoted_symbols=result.quoted_symbols,
        rates_written=result.rates_written,
        refreshed_at=result.refreshed_at,
    )


@router.get(
    "/wallets",
    response_model=BalancesResponse,
    summary="List balances",
    description="All balances held by the caller, ordered by currency.",
)
def list_balances(
    user_id: str = Depends(get_current_user_id),
    use_case: ListBalancesUseCase = Depends(get_list_balances_use_case),
) -> BalancesResponse:
    """List the caller's balances."""
    return BalancesResponse(balances=[_balance_item(r) for r in use_case.execute(user_id)])


@router.get(
    "/wallets/{currency}",
    response_model=BalanceItem,
    responses={400: {"model": ErrorResponse}},
    summary="Get one balance",
    description="Balance of one currency; 0 if the caller never held it.",
)
def get_balance(
    currency: str,
    user_id: str = Depends(get_current_user_id),
    use_case: GetBalanceUseCase = Depends(get_balance_use_case),
) -> BalanceItem:
    """Return the caller's balance in one currency."""
    return _balance_item(use_case.execute(GetBalanceQuery(user_id=user_id, currency=currency)))


@router.post(
    "/wallets/deposit",
    response_model=FundMovementResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Deposit funds",
    description=(
        "Demo funding endpoint: credits the caller's balance with no payment "
        "behind it. Not for production exposure."
    ),
)
@limiter.limit(settings.rate_limit_heavy)
def deposit_funds(
    request: Request,
    body: FundMovementRequest,
    user_id: str = Depends(get_current_user_id),
    use_case: DepositFundsUseCase = Depends(get_deposit_funds_use_case),
) -> FundMovementResponse:
    """Credit a deposit to the caller's balance."""
    result = use_case.execute(
        FundMovementCommand(user_id=user_id, currency=body.currency, amount=body.amount)
    )
    return _movement_response(result)


@router.post(
    "/wallets/withdraw",
    response_model=FundMovementResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Withdraw funds",
)
@limiter.limit(settings.rate_limit_heavy)
def withdraw_funds(
    request: Request,
    body: FundMovementRequest,
    user_id: str = Depends(get_current_user_id),
    use_case: WithdrawFundsUseCase = Depends(get_withdraw_funds_use_case),
) -> FundMovementResponse:
    """Debit a withdrawal from the caller's balance."""
    result = use_case.execute(
        FundMovementCommand(user_id=user_id, currency=body.currency, amount=body.amount)
    )
    return _movement_response(result)


@router.get(
    "/transactions",
    response_model=TransactionsResponse,
    summary="Transaction history",
    description="All transactions of the caller, most recent first.",
)
def list_transactions(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    kind: TransactionKind | None = Query(default=None),
    user_id: str = Depends(get_current_user_id),
    use_case: ListTransactionsUseCase = Depends(get_list_transactions_use_case),
) -> TransactionsResponse:
    """List the caller's transactions, optionally filtered by kind."""
    results = use_case.execute(
        ListTransactionsQuery(user_id=user_id, limit=limit, offset=offset, kind=kind)
    )
    return TransactionsResponse(transactions=[_transaction_item(r) for r in results])
