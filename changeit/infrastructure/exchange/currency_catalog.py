"""
Adapter: Currency catalog.

Implements CurrencyCatalogPort from a fixed list of symbols,
normally taken from application settings.
"""

from changeit.domain.exchange.ports import CurrencyCatalogPort


class StaticCurrencyCatalog(CurrencyCatalogPort):
    """Catalog backed by an in-process list of uppercase symbols."""

    def __init__(self, symbols: list[str]) -> None:
        normalized = []
        for symbol in symbols:
            code = symbol.strip().upper()
            if code and code not in normalized:
                normalized.append(code)
        self._symbols = tuple(normalized)

    def list_symbols(self) -> list[str]:
        return list(self._symbols)

    def is_supported(self, symbol: str) -> bool:
        return symbol in self._symbols
