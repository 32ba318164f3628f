"""
Input validation shared by the exchange use cases.

All checks run before any storage call, so a rejected request
never has side effects.
"""

from decimal import Decimal, InvalidOperation

from changeit.domain.exchange import money
from changeit.domain.exchange.errors import InvalidRequestError, UnknownCurrencyError
from changeit.domain.exchange.ports import CurrencyCatalogPort


def require_symbol(catalog: CurrencyCatalogPort, symbol: str | None, field: str) -> str:
    """Return the normalized symbol, or raise if it is missing or unknown."""
    if symbol is None or not str(symbol).strip():
        raise InvalidRequestError(f"{field} is required")
    normalized = str(symbol).strip().upper()
    if not catalog.is_supported(normalized):
        raise UnknownCurrencyError(normalized)
    return normalized


def require_amount(value: object, field: str) -> Decimal:
    """Return the amount as a positive ``Decimal`` within ledger precision."""
    if value is None:
        raise InvalidRequestError(f"{field} is required")
    if isinstance(value, bool):
        raise InvalidRequestError(f"{field} must be a number")
    try:
        amount = money.to_decimal(value)
    except ValueError:
        raise InvalidRequestError(f"{field} must be a finite number") from None
    if amount <= money.ZERO:
        raise InvalidRequestError(f"{field} must be greater than zero")
    try:
        quantized = money.quantize_amount(amount)
    except InvalidOperation:
        raise InvalidRequestError(f"{field} is too large") from None
    if quantized != amount:
        raise InvalidRequestError(f"{field} has more than 18 decimal places")
    return amount


def require_user(user_id: str | None) -> str:
    if user_id is None or not str(user_id).strip():
        raise InvalidRequestError("user_id is required")
    return str(user_id).strip()
