"""
Dependency injection for the exchange bounded context.

Provides FastAPI dependency functions that wire infrastructure
adapters into use cases via constructor injection.
These are the composition root for the exchange context.
"""

from functools import lru_cache

from fastapi import Header, HTTPException
from sqlalchemy.engine import Engine

from changeit.application.exchange.execute_exchange import ExecuteExchangeUseCase
from changeit.application.exchange.get_balances import GetBalanceUseCase, ListBalancesUseCase
from changeit.application.exchange.get_exchange_rate import GetExchangeRateUseCase
from changeit.application.exchange.list_transactions import ListTransactionsUseCase
from changeit.application.exchange.move_funds import DepositFundsUseCase, WithdrawFundsUseCase
from changeit.application.exchange.refresh_rates import RefreshRatesUseCase
from changeit.core.config import settings
from changeit.domain.exchange.rate_resolver import RateResolver
from changeit.infrastructure.exchange.balance_repository import BalanceRepositoryAdapter
from changeit.infrastructure.exchange.currency_catalog import StaticCurrencyCatalog
from changeit.infrastructure.exchange.database import build_engine
from changeit.infrastructure.exchange.exchange_rate_repository import (
    ExchangeRateRepositoryAdapter,
)
from changeit.infrastructure.exchange.price_feed_adapter import MockPriceFeedAdapter
from changeit.infrastructure.exchange.transaction_repository import (
    TransactionRepositoryAdapter,
)

USER_HEADER = "X-User-Id"


@lru_cache(maxsize=1)
def get_db_engine() -> Engine:
    """Build the SQLAlchemy engine once per process from application settings."""
    return build_engine(settings.database_url)


def get_current_user_id(
    x_user_id: str | None = Header(default=None, alias=USER_HEADER),
) -> str:
    """Return the authenticated user id supplied by the auth gateway."""
    if x_user_id is None or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Authentication required")
    return x_user_id.strip()


def _catalog() -> StaticCurrencyCatalog:
    return StaticCurrencyCatalog(settings.supported_currencies)


def _rate_resolver(engine: Engine) -> RateResolver:
    return RateResolver(
        rate_repo=ExchangeRateRepositoryAdapter(engine=engine),
        reference_currency=settings.reference_currency,
    )


def get_exchange_rate_use_case() -> GetExchangeRateUseCase:
    """Build GetExchangeRateUseCase with its infrastructure dependencies."""
    return GetExchangeRateUseCase(
        rate_resolver=_rate_resolver(get_db_engine()),
        catalog=_catalog(),
        spread=settings.spread,
    )


def get_execute_exchange_use_case() -> ExecuteExchangeUseCase:
    """Build ExecuteExchangeUseCase with its infrastructure dependencies."""
    engine = get_db_engine()
    return ExecuteExchangeUseCase(
        rate_resolver=_rate_resolver(engine),
        balance_repo=BalanceRepositoryAdapter(
            engine=engine, cas_attempts=settings.balance_cas_attempts
        ),
        transaction_repo=TransactionRepositoryAdapter(engine=engine),
        catalog=_catalog(),
        fee_rate=settings.fee_rate,
        spread=settings.spread,
        retry_attempts=settings.storage_retry_attempts,
    )


def get_balance_use_case() -> GetBalanceUseCase:
    """Build GetBalanceUseCase with its infrastructure dependencies."""
    return GetBalanceUseCase(
        balance_repo=BalanceRepositoryAdapter(engine=get_db_engine()),
        catalog=_catalog(),
    )


def get_list_balances_use_case() -> ListBalancesUseCase:
    """Build ListBalancesUseCase with its infrastructure dependencies."""
    return ListBalancesUseCase(balance_repo=BalanceRepositoryAdapter(engine=get_db_engine()))


def get_list_transactions_use_case() -> ListTransactionsUseCase:
    """Build ListTransactionsUseCase with its infrastructure dependencies."""
    return ListTransactionsUseCase(
        transaction_repo=TransactionRepositoryAdapter(engine=get_db_engine()),
    )


def get_deposit_funds_use_case() -> DepositFundsUseCase:
    """Build DepositFundsUseCase with its infrastructure dependencies."""
    engine = get_db_engine()
    return DepositFundsUseCase(
        balance_repo=BalanceRepositoryAdapter(
            engine=engine, cas_attempts=settings.balance_cas_attempts
        ),
        transaction_repo=TransactionRepositoryAdapter(engine=engine),
        catalog=_catalog(),
        retry_attempts=settings.storage_retry_attempts,
    )


def get_withdraw_funds_use_case() -> WithdrawFundsUseCase:
    """Build WithdrawFundsUseCase with its infrastructure dependencies."""
    engine = get_db_engine()
    return WithdrawFundsUseCase(
        balance_repo=BalanceRepositoryAdapter(
            engine=engine, cas_attempts=settings.balance_cas_attempts
        ),
        transaction_repo=TransactionRepositoryAdapter(engine=engine),
        catalog=_catalog(),
        retry_attempts=settings.storage_retry_attempts,
    )


def get_refresh_rates_use_case() -> RefreshRatesUseCase:
    """Build RefreshRatesUseCase with its infrastructure dependencies."""
    return RefreshRatesUseCase(
        price_feed=MockPriceFeedAdapter(jitter=settings.price_jitter),
        rate_repo=ExchangeRateRepositoryAdapter(engine=get_db_engine()),
        catalog=_catalog(),
        reference_currency=settings.reference_currency,
        publish_cross_rates=settings.publish_cross_rates,
    )
