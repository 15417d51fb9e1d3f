"""Holdings store collaborator.

The gateway only needs two things from portfolio storage: the tickers held
in a portfolio and any stored primary-provider symbol for a ticker.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class Holding:
    ticker: str
    stock_name: str | None = None
    portfolio_id: str | None = None
    provider_symbol: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "ticker", self.ticker.strip().upper())


class HoldingsStore(ABC):
    """Abstract holdings lookup."""

    @abstractmethod
    def list_holdings(self, portfolio_id: str | None = None) -> list[Holding]:
        """Holdings of ``portfolio_id``; all portfolios when None."""
        ...

    @abstractmethod
    def provider_symbol_hint(self, ticker: str) -> str | None:
        ...


class InMemoryHoldingsStore(HoldingsStore):
    """List-backed store for tests and scripts."""

    def __init__(self, holdings: list[Holding] | None = None) -> None:
        self._holdings = list(holdings or [])

    def add(self, holding: Holding) -> None:
        self._holdings.append(holding)

    def list_holdings(self, portfolio_id: str | None = None) -> list[Holding]:
        if portfolio_id is None:
            return list(self._holdings)
        return [h for h in self._holdings if h.portfolio_id == portfolio_id]

    def provider_symbol_hint(self, ticker: str) -> str | None:
        key = ticker.strip().upper()
        for h in self._holdings:
            if h.ticker == key and h.provider_symbol:
                return h.provider_symbol
        return None
