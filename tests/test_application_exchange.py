"""
Tests for the exchange application layer (use cases).

Tests use cases with in-memory port implementations. No real
infrastructure needed. Each test checks orchestration: which records
are written, which balances move, and what happens on failure.
"""

import time
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import uuid4

import pytest

from changeit.application.exchange.dtos import (
    ExecuteExchangeCommand,
    FundMovementCommand,
    GetBalanceQuery,
    GetExchangeRateQuery,
    ListTransactionsQuery,
)
from changeit.application.exchange.execute_exchange import ExecuteExchangeUseCase
from changeit.application.exchange.get_balances import GetBalanceUseCase, ListBalancesUseCase
from changeit.application.exchange.get_exchange_rate import GetExchangeRateUseCase
from changeit.application.exchange.list_transactions import ListTransactionsUseCase
from changeit.application.exchange.move_funds import DepositFundsUseCase, WithdrawFundsUseCase
from changeit.application.exchange.refresh_rates import RefreshRatesUseCase
from changeit.application.exchange.retry import call_with_retry
from changeit.domain.exchange.entities import (
    OPEN_STATUSES,
    Balance,
    ExchangeRate,
    NewTransaction,
    PriceQuote,
    Transaction,
    TransactionKind,
    TransactionStatus,
)
from changeit.domain.exchange.errors import (
    ExchangeFailedError,
    InsufficientFundsError,
    InvalidRequestError,
    InvalidTransitionError,
    RateUnavailableError,
    TransactionNotFoundError,
    TransientStorageError,
    UnknownCurrencyError,
)
from changeit.domain.exchange.ports import (
    BalanceRepository,
    ExchangeRateRepository,
    PriceFeedPort,
    TransactionRepository,
)
from changeit.domain.exchange.rate_resolver import RateResolver
from changeit.infrastructure.exchange.currency_catalog import StaticCurrencyCatalog

USER = "user-1"


# ══════════════════════════════════════════════════════════════════════
# In-memory ports
# ══════════════════════════════════════════════════════════════════════


class InMemoryRateRepository(ExchangeRateRepository):
    def __init__(self, edges: Optional[dict[tuple[str, str], str]] = None) -> None:
        self.edges = {pair: Decimal(rate) for pair, rate in (edges or {}).items()}
        self.saved: list[list[ExchangeRate]] = []

    def get_rate(self, from_currency: str, to_currency: str) -> Optional[Decimal]:
        return self.edges.get((from_currency, to_currency))

    def save_rates(self, rates: list[ExchangeRate]) -> int:
        self.saved.append(list(rates))
        for rate in rates:
            self.edges[(rate.from_currency, rate.to_currency)] = rate.rate
        return len(rates)

    def list_rates(self) -> list[ExchangeRate]:
        now = datetime.now(timezone.utc)
        return [
            ExchangeRate(from_currency=f, to_currency=t, rate=r, updated_at=now)
            for (f, t), r in sorted(self.edges.items())
        ]


class InMemoryBalanceRepository(BalanceRepository):
    """Balance ledger with injectable failures.

    ``failures`` maps (action, currency) to a list of exceptions raised
    by successive calls; an exhausted list lets calls through again.
    """

    def __init__(self, balances: Optional[dict[tuple[str, str], str]] = None) -> None:
        self.balances = {key: Decimal(v) for key, v in (balances or {}).items()}
        self.failures: dict[tuple[str, str], list[Exception]] = {}
        self.calls: list[tuple[str, str, Decimal]] = []

    def fail(self, action: str, currency: str, *errors: Exception) -> None:
        self.failures[(action, currency)] = list(errors)

    def _maybe_fail(self, action: str, currency: str) -> None:
        pending = self.failures.get((action, currency))
        if pending:
            raise pending.pop(0)

    def get_balance(self, user_id: str, currency: str) -> Decimal:
        return self.balances.get((user_id, currency), Decimal("0"))

    def list_balances(self, user_id: str) -> list[Balance]:
        now = datetime.now(timezone.utc)
        return [
            Balance(user_id=u, currency=c, amount=a, updated_at=now)
            for (u, c), a in sorted(self.balances.items())
            if u == user_id
        ]

    def debit(self, user_id: str, currency: str, amount: Decimal) -> Decimal:
        self.calls.append(("debit", currency, amount))
        self._maybe_fail("debit", currency)
        current = self.get_balance(user_id, currency)
        if current < amount:
            raise InsufficientFundsError(currency, str(amount), str(current))
        self.balances[(user_id, currency)] = current - amount
        return current - amount

    def credit(self, user_id: str, currency: str, amount: Decimal) -> Decimal:
        self.calls.append(("credit", currency, amount))
        self._maybe_fail("credit", currency)
        new_amount = self.get_balance(user_id, currency) + amount
        self.balances[(user_id, currency)] = new_amount
        return new_amount


class LostAckBalanceRepository(InMemoryBalanceRepository):
    """Commits the first debit, then reports it as a transient failure."""

    def __init__(self, balances: dict[tuple[str, str], str]) -> None:
        super().__init__(balances)
        self.lost_acks = 1

    def debit(self, user_id: str, currency: str, amount: Decimal) -> Decimal:
        new_amount = super().debit(user_id, currency, amount)
        if self.lost_acks:
            self.lost_acks -= 1
            raise TransientStorageError("update balance", "connection reset")
        return new_amount


class InMemoryTransactionRepository(TransactionRepository):
    def __init__(self) -> None:
        self.records: dict[str, Transaction] = {}
        self.complete_then_raise = False
        self.fail_create: list[Exception] = []

    def create(self, record: NewTransaction) -> str:
        if self.fail_create:
            raise self.fail_create.pop(0)
        transaction_id = record.id or uuid4().hex
        self.records[transaction_id] = Transaction(
            id=transaction_id,
            user_id=record.user_id,
            kind=record.kind,
            status=record.status,
            created_at=datetime.now(timezone.utc),
            from_currency=record.from_currency,
            to_currency=record.to_currency,
            from_amount=record.from_amount,
            to_amount=record.to_amount,
            rate=record.rate,
            fee=record.fee,
        )
        return transaction_id

    def get(self, transaction_id: str) -> Optional[Transaction]:
        return self.records.get(transaction_id)

    def _transition(self, transaction_id: str, target: TransactionStatus, **changes) -> None:
        record = self.records.get(transaction_id)
        if record is None:
            raise TransactionNotFoundError(transaction_id)
        if record.status not in OPEN_STATUSES:
            raise InvalidTransitionError(transaction_id, record.status.value, target.value)
        values = {**record.__dict__, "status": target, **changes}
        self.records[transaction_id] = Transaction(**values)

    def mark_processing(self, transaction_id: str) -> None:
        self._transition(transaction_id, TransactionStatus.PROCESSING)

    def mark_completed(self, transaction_id: str) -> None:
        self._transition(
            transaction_id,
            TransactionStatus.COMPLETED,
            completed_at=datetime.now(timezone.utc),
        )
        if self.complete_then_raise:
            raise TransientStorageError("mark transaction completed", "connection reset")

    def mark_failed(self, transaction_id: str, reason: str) -> None:
        self._transition(
            transaction_id,
            TransactionStatus.FAILED,
            failure_reason=reason,
            completed_at=datetime.now(timezone.utc),
        )

    def list_for_user(
        self,
        user_id: str,
        limit: int = 50,
        offset: int = 0,
        kind: Optional[TransactionKind] = None,
    ) -> list[Transaction]:
        records = [
            r
            for r in self.records.values()
            if r.user_id == user_id and (kind is None or r.kind is kind)
        ]
        records.sort(key=lambda r: (r.created_at, r.id), reverse=True)
        return records[offset : offset + limit]


class FixedPriceFeed(PriceFeedPort):
    def __init__(self, prices: dict[str, str]) -> None:
        self.prices = {symbol: Decimal(price) for symbol, price in prices.items()}
        self.requested: list[str] = []

    def fetch_quotes(self, symbols: list[str]) -> list[PriceQuote]:
        self.requested = list(symbols)
        now = datetime.now(timezone.utc)
        return [
            PriceQuote(symbol=s, price=self.prices[s], quoted_at=now)
            for s in symbols
            if s in self.prices
        ]


# ══════════════════════════════════════════════════════════════════════
# Builders
# ══════════════════════════════════════════════════════════════════════

CATALOG = StaticCurrencyCatalog(["BTC", "ETH", "USDT", "DOT"])
MARKET = {("BTC", "USDT"): "65000", ("ETH", "USDT"): "3250"}


def _exchange(
    balances: InMemoryBalanceRepository,
    transactions: InMemoryTransactionRepository,
    fee_rate: str = "0",
    spread: str = "0",
    edges: Optional[dict[tuple[str, str], str]] = None,
) -> ExecuteExchangeUseCase:
    return ExecuteExchangeUseCase(
        rate_resolver=RateResolver(
            InMemoryRateRepository(MARKET if edges is None else edges), "USDT"
        ),
        balance_repo=balances,
        transaction_repo=transactions,
        catalog=CATALOG,
        fee_rate=Decimal(fee_rate),
        spread=Decimal(spread),
        retry_attempts=2,
    )


def _command(from_currency="BTC", to_currency="ETH", amount="0.5") -> ExecuteExchangeCommand:
    return ExecuteExchangeCommand(
        user_id=USER,
        from_currency=from_currency,
        to_currency=to_currency,
        from_amount=Decimal(amount) if isinstance(amount, str) else amount,
    )


@pytest.fixture
def balances() -> InMemoryBalanceRepository:
    return InMemoryBalanceRepository({(USER, "BTC"): "1"})


@pytest.fixture
def transactions() -> InMemoryTransactionRepository:
    return InMemoryTransactionRepository()


# ══════════════════════════════════════════════════════════════════════
# Tests
# ══════════════════════════════════════════════════════════════════════


class TestCallWithRetry:
    """Tests for the bounded storage retry."""

    def test_retries_transient_errors_until_success(self) -> None:
        outcomes = [TransientStorageError("read"), "ok"]

        def operation():
            outcome = outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        assert call_with_retry(operation, attempts=2, description="read", base_delay=0) == "ok"

    def test_gives_up_after_the_last_attempt(self) -> None:
        calls = []

        def operation():
            calls.append(1)
            raise TransientStorageError("read")

        with pytest.raises(TransientStorageError):
            call_with_retry(operation, attempts=3, description="read", base_delay=0)
        assert len(calls) == 3

    def test_other_errors_are_not_retried(self) -> None:
        calls = []

        def operation():
            calls.append(1)
            raise InsufficientFundsError("BTC", "2", "1")

        with pytest.raises(InsufficientFundsError):
            call_with_retry(operation, attempts=3, description="debit", base_delay=0)
        assert len(calls) == 1

    def test_back_off_doubles_up_to_the_cap(self, monkeypatch) -> None:
        delays: list[float] = []
        monkeypatch.setattr(time, "sleep", delays.append)

        def operation():
            raise TransientStorageError("read")

        with pytest.raises(TransientStorageError):
            call_with_retry(
                operation, attempts=4, description="read", base_delay=0.01, max_delay=0.025
            )
        assert delays == pytest.approx([0.01, 0.02, 0.025])

    def test_at_least_one_attempt_is_required(self) -> None:
        with pytest.raises(ValueError):
            call_with_retry(lambda: "ok", attempts=0, description="read")


class TestExecuteExchangeUseCase:
    """Tests for the ExecuteExchangeUseCase."""

    def test_successful_exchange_moves_both_balances(self, balances, transactions) -> None:
        result = _exchange(balances, transactions).execute(_command())

        assert result.rate == Decimal("20")
        assert result.to_amount == Decimal("10")
        assert result.fee == Decimal("0")
        assert balances.get_balance(USER, "BTC") == Decimal("0.5")
        assert balances.get_balance(USER, "ETH") == Decimal("10")

        record = transactions.get(result.transaction_id)
        assert record.status is TransactionStatus.COMPLETED
        assert record.kind is TransactionKind.EXCHANGE
        assert record.completed_at is not None
        assert record.from_amount == Decimal("0.5")
        assert record.to_amount == Decimal("10")

    def test_symbols_are_normalized(self, balances, transactions) -> None:
        result = _exchange(balances, transactions).execute(_command(" btc", "eth "))
        assert (result.from_currency, result.to_currency) == ("BTC", "ETH")

    def test_fee_is_taken_from_the_source_amount(self, balances, transactions) -> None:
        result = _exchange(balances, transactions, fee_rate="0.01").execute(
            _command(amount="1")
        )

        assert result.fee == Decimal("0.01")
        assert result.to_amount == Decimal("19.8")
        assert balances.get_balance(USER, "BTC") == Decimal("0")
        assert balances.get_balance(USER, "ETH") == Decimal("19.8")

    def test_spread_discounts_the_applied_rate(self, balances, transactions) -> None:
        result = _exchange(balances, transactions, spread="0.01").execute(
            _command(amount="1")
        )

        assert result.rate == Decimal("19.8")
        assert result.to_amount == Decimal("19.8")

    def test_insufficient_funds_creates_no_record(self, balances, transactions) -> None:
        with pytest.raises(InsufficientFundsError) as exc_info:
            _exchange(balances, transactions).execute(_command(amount="2"))

        assert exc_info.value.currency == "BTC"
        assert transactions.records == {}
        assert balances.calls == []

    def test_same_currency_is_rejected(self, balances, transactions) -> None:
        with pytest.raises(InvalidRequestError):
            _exchange(balances, transactions).execute(_command("BTC", "BTC"))
        assert transactions.records == {}

    def test_unknown_currency_is_rejected(self, balances, transactions) -> None:
        with pytest.raises(UnknownCurrencyError):
            _exchange(balances, transactions).execute(_command("BTC", "DOGE"))

    @pytest.mark.parametrize(
        "amount",
        [
            Decimal("0"),
            Decimal("-1"),
            None,
            Decimal("0.0000000000000000001"),
            Decimal("NaN"),
            Decimal("1e30"),
        ],
    )
    def test_invalid_amount_is_rejected(self, balances, transactions, amount) -> None:
        with pytest.raises(InvalidRequestError):
            _exchange(balances, transactions).execute(_command(amount=amount))
        assert transactions.records == {}

    def test_missing_rate_creates_no_record(self, balances, transactions) -> None:
        with pytest.raises(RateUnavailableError):
            _exchange(balances, transactions).execute(_command("BTC", "DOT"))
        assert transactions.records == {}

    def test_amount_too_small_to_convert_is_rejected(self, transactions) -> None:
        balances = InMemoryBalanceRepository({(USER, "ETH"): "1"})

        with pytest.raises(InvalidRequestError):
            _exchange(balances, transactions).execute(
                _command("ETH", "BTC", "0.000000000000000001")
            )
        assert transactions.records == {}

    def test_amount_too_large_to_convert_is_rejected(self, transactions) -> None:
        balances = InMemoryBalanceRepository({(USER, "BTC"): "1e21"})
        exchange = _exchange(balances, transactions, edges={("BTC", "USDT"): "65430"})

        with pytest.raises(InvalidRequestError, match="too large"):
            exchange.execute(_command("BTC", "USDT", "1e21"))
        assert transactions.records == {}
        assert balances.get_balance(USER, "BTC") == Decimal("1e21")

    def test_fee_rate_must_be_below_one(self, balances, transactions) -> None:
        with pytest.raises(ValueError):
            _exchange(balances, transactions, fee_rate="1")

    def test_credit_failure_compensates_the_debit(self, balances, transactions) -> None:
        balances.fail("credit", "ETH", RuntimeError("ledger offline"))

        with pytest.raises(ExchangeFailedError) as exc_info:
            _exchange(balances, transactions).execute(_command())

        assert balances.get_balance(USER, "BTC") == Decimal("1")
        assert balances.get_balance(USER, "ETH") == Decimal("0")
        record = transactions.get(exc_info.value.transaction_id)
        assert record.status is TransactionStatus.FAILED
        assert "ledger offline" in record.failure_reason

    def test_transient_credit_failure_is_retried(self, balances, transactions) -> None:
        balances.fail("credit", "ETH", TransientStorageError("update balance"))

        result = _exchange(balances, transactions).execute(_command())

        assert transactions.get(result.transaction_id).status is TransactionStatus.COMPLETED
        assert balances.get_balance(USER, "ETH") == Decimal("10")

    def test_persistent_transient_failure_fails_the_exchange(
        self, balances, transactions
    ) -> None:
        balances.fail(
            "credit",
            "ETH",
            TransientStorageError("update balance"),
            TransientStorageError("update balance"),
        )

        with pytest.raises(ExchangeFailedError) as exc_info:
            _exchange(balances, transactions).execute(_command())

        assert balances.get_balance(USER, "BTC") == Decimal("1")
        record = transactions.get(exc_info.value.transaction_id)
        assert record.status is TransactionStatus.FAILED

    def test_lost_debit_race_marks_record_failed(self, balances, transactions) -> None:
        balances.fail("debit", "BTC", InsufficientFundsError("BTC", "0.5", "0"))

        with pytest.raises(InsufficientFundsError):
            _exchange(balances, transactions).execute(_command())

        (record,) = transactions.records.values()
        assert record.status is TransactionStatus.FAILED
        assert balances.get_balance(USER, "BTC") == Decimal("1")
        assert balances.get_balance(USER, "ETH") == Decimal("0")

    def test_failed_compensation_is_recorded_in_the_reason(
        self, balances, transactions
    ) -> None:
        balances.fail("credit", "ETH", RuntimeError("ledger offline"))
        balances.fail("credit", "BTC", RuntimeError("still offline"))

        with pytest.raises(ExchangeFailedError) as exc_info:
            _exchange(balances, transactions).execute(_command())

        record = transactions.get(exc_info.value.transaction_id)
        assert record.status is TransactionStatus.FAILED
        assert "compensation incomplete" in record.failure_reason
        assert "credit 0.5 BTC" in record.failure_reason

    def test_completion_error_after_commit_counts_as_success(
        self, balances, transactions
    ) -> None:
        transactions.complete_then_raise = True

        result = _exchange(balances, transactions).execute(_command())

        assert transactions.get(result.transaction_id).status is TransactionStatus.COMPLETED
        assert balances.get_balance(USER, "BTC") == Decimal("0.5")
        assert balances.get_balance(USER, "ETH") == Decimal("10")

    def test_debit_retried_after_a_lost_acknowledgement_is_applied_twice(
        self, transactions
    ) -> None:
        # Balance mutations carry no idempotency key: delivery is at-least-once.
        balances = LostAckBalanceRepository({(USER, "BTC"): "1"})

        result = _exchange(balances, transactions).execute(_command())

        assert transactions.get(result.transaction_id).status is TransactionStatus.COMPLETED
        assert balances.get_balance(USER, "BTC") == Decimal("0")
        assert balances.get_balance(USER, "ETH") == Decimal("10")

    def test_record_creation_outage_has_no_side_effects(self, balances, transactions) -> None:
        transactions.fail_create = [
            TransientStorageError("create transaction"),
            TransientStorageError("create transaction"),
        ]

        with pytest.raises(TransientStorageError):
            _exchange(balances, transactions).execute(_command())

        assert transactions.records == {}
        assert balances.calls == []


class TestGetExchangeRateUseCase:
    """Tests for the GetExchangeRateUseCase."""

    def _use_case(self, spread: str = "0") -> GetExchangeRateUseCase:
        return GetExchangeRateUseCase(
            rate_resolver=RateResolver(InMemoryRateRepository(MARKET), "USDT"),
            catalog=CATALOG,
            spread=Decimal(spread),
        )

    def test_quote_applies_spread(self) -> None:
        result = self._use_case(spread="0.01").execute(GetExchangeRateQuery("btc", "eth"))

        assert result.market_rate == Decimal("20")
        assert result.rate == Decimal("19.8")
        assert result.from_currency == "BTC"

    def test_same_currency_quote_is_identity(self) -> None:
        result = self._use_case(spread="0.01").execute(GetExchangeRateQuery("ETH", "ETH"))
        assert result.rate == Decimal("1")

    def test_unknown_pair_raises(self) -> None:
        with pytest.raises(RateUnavailableError):
            self._use_case().execute(GetExchangeRateQuery("BTC", "DOT"))


class TestBalanceUseCases:
    """Tests for GetBalanceUseCase and ListBalancesUseCase."""

    def test_missing_balance_reads_as_zero(self) -> None:
        repo = InMemoryBalanceRepository()

        result = GetBalanceUseCase(repo, CATALOG).execute(GetBalanceQuery(USER, "eth"))

        assert result.currency == "ETH"
        assert result.amount == Decimal("0")
        assert repo.balances == {}

    def test_lists_only_the_users_balances(self) -> None:
        repo = InMemoryBalanceRepository(
            {(USER, "ETH"): "2", (USER, "BTC"): "1", ("other", "BTC"): "5"}
        )

        results = ListBalancesUseCase(repo).execute(USER)

        assert [(r.currency, r.amount) for r in results] == [
            ("BTC", Decimal("1")),
            ("ETH", Decimal("2")),
        ]

    def test_blank_user_is_rejected(self) -> None:
        with pytest.raises(InvalidRequestError):
            ListBalancesUseCase(InMemoryBalanceRepository()).execute("  ")


class TestFundMovementUseCases:
    """Tests for DepositFundsUseCase and WithdrawFundsUseCase."""

    def test_deposit_credits_and_completes(self, transactions) -> None:
        repo = InMemoryBalanceRepository()

        result = DepositFundsUseCase(repo, transactions, CATALOG).execute(
            FundMovementCommand(USER, "btc", Decimal("1.5"))
        )

        assert result.balance == Decimal("1.5")
        record = transactions.get(result.transaction_id)
        assert record.kind is TransactionKind.DEPOSIT
        assert record.status is TransactionStatus.COMPLETED
        assert (record.to_currency, record.to_amount) == ("BTC", Decimal("1.5"))
        assert record.from_currency is None

    def test_withdrawal_debits_and_completes(self, balances, transactions) -> None:
        result = WithdrawFundsUseCase(balances, transactions, CATALOG).execute(
            FundMovementCommand(USER, "BTC", Decimal("0.25"))
        )

        assert result.balance == Decimal("0.75")
        record = transactions.get(result.transaction_id)
        assert record.kind is TransactionKind.WITHDRAWAL
        assert (record.from_currency, record.from_amount) == ("BTC", Decimal("0.25"))

    def test_overdrawing_withdrawal_creates_no_record(self, balances, transactions) -> None:
        with pytest.raises(InsufficientFundsError):
            WithdrawFundsUseCase(balances, transactions, CATALOG).execute(
                FundMovementCommand(USER, "BTC", Decimal("2"))
            )
        assert transactions.records == {}

    def test_failed_deposit_leaves_balance_untouched(self, transactions) -> None:
        repo = InMemoryBalanceRepository()
        repo.fail("credit", "BTC", RuntimeError("ledger offline"))

        with pytest.raises(ExchangeFailedError) as exc_info:
            DepositFundsUseCase(repo, transactions, CATALOG).execute(
                FundMovementCommand(USER, "BTC", Decimal("1"))
            )

        assert repo.get_balance(USER, "BTC") == Decimal("0")
        record = transactions.get(exc_info.value.transaction_id)
        assert record.status is TransactionStatus.FAILED


class TestListTransactionsUseCase:
    """Tests for the ListTransactionsUseCase."""

    @pytest.mark.parametrize(("limit", "offset"), [(0, 0), (201, 0), (10, -1)])
    def test_out_of_range_paging_is_rejected(self, transactions, limit, offset) -> None:
        with pytest.raises(InvalidRequestError):
            ListTransactionsUseCase(transactions).execute(
                ListTransactionsQuery(USER, limit=limit, offset=offset)
            )

    def test_kind_filter_and_result_mapping(self, balances, transactions) -> None:
        DepositFundsUseCase(balances, transactions, CATALOG).execute(
            FundMovementCommand(USER, "ETH", Decimal("1"))
        )
        _exchange(balances, transactions).execute(_command())

        results = ListTransactionsUseCase(transactions).execute(
            ListTransactionsQuery(USER, kind=TransactionKind.EXCHANGE)
        )

        assert len(results) == 1
        assert results[0].kind == "exchange"
        assert results[0].status == "completed"
        assert results[0].to_amount == Decimal("10")


class TestRefreshRatesUseCase:
    """Tests for the RefreshRatesUseCase."""

    def test_publishes_reference_and_cross_edges(self) -> None:
        feed = FixedPriceFeed({"BTC": "65000", "ETH": "3250"})
        repo = InMemoryRateRepository()
        catalog = StaticCurrencyCatalog(["BTC", "ETH", "USDT"])

        result = RefreshRatesUseCase(feed, repo, catalog, "USDT").execute()

        assert feed.requested == ["BTC", "ETH"]
        assert result.quoted_symbols == ["BTC", "ETH"]
        assert result.rates_written == 4
        assert repo.get_rate("BTC", "USDT") == Decimal("65000")
        assert repo.get_rate("BTC", "ETH") == Decimal("20")
        assert repo.get_rate("ETH", "BTC") == Decimal("0.05")

    def test_reference_edges_only(self) -> None:
        feed = FixedPriceFeed({"BTC": "65000", "ETH": "3250"})
        repo = InMemoryRateRepository()
        catalog = StaticCurrencyCatalog(["BTC", "ETH", "USDT"])

        result = RefreshRatesUseCase(
            feed, repo, catalog, "USDT", publish_cross_rates=False
        ).execute()

        assert result.rates_written == 2
        assert repo.get_rate("BTC", "ETH") is None

    def test_non_positive_prices_are_skipped(self) -> None:
        feed = FixedPriceFeed({"BTC": "0", "ETH": "3250"})
        repo = InMemoryRateRepository()
        catalog = StaticCurrencyCatalog(["BTC", "ETH", "USDT"])

        result = RefreshRatesUseCase(feed, repo, catalog, "USDT").execute()

        assert result.quoted_symbols == ["ETH"]
        assert repo.get_rate("BTC", "USDT") is None

    def test_empty_feed_writes_nothing(self) -> None:
        repo = InMemoryRateRepository()

        result = RefreshRatesUseCase(
            FixedPriceFeed({}), repo, StaticCurrencyCatalog(["BTC", "USDT"]), "USDT"
        ).execute()

        assert result.rates_written == 0
        assert repo.saved == []
