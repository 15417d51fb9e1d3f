"""Ticker identity model."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from stockgateway.errors import GatewayError, GatewayErrorCode
from stockgateway.models.enums import ProviderRole

# Yahoo-style exchange suffix: SAP.DE, LLOY.L, 0005.HK. Class shares use
# a dash (BRK-B) and stay domestic.
_SUFFIX_RE = re.compile(r"^(?P<base>.+)\.(?P<suffix>[A-Z]{1,4})$")

# Letters, digits and . - = with an optional leading ^ (indices such as
# ^GSPC). Tickers name cache directories, so nothing else is accepted.
_VALID_RE = re.compile(r"^\^?[A-Z0-9][A-Z0-9.\-=]*$")


def normalize_symbol(symbol: str) -> str:
    """Strip and uppercase ``symbol``.

    Raises:
        GatewayError: BAD_REQUEST when the result is not a valid ticker.
    """
    normalized = symbol.strip().upper()
    if not _VALID_RE.match(normalized):
        raise GatewayError(
            f"Invalid ticker: {symbol!r}",
            code=GatewayErrorCode.BAD_REQUEST,
        )
    return normalized


@dataclass(frozen=True)
class Ticker:
    """Canonical ticker plus lazily resolved provider-specific spellings.

    Attributes:
        symbol: Canonical symbol, the system-wide identity.
        variants: Provider role -> symbol spelling for that provider.
    """

    symbol: str
    variants: dict[ProviderRole, str] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "symbol", normalize_symbol(self.symbol))

    @property
    def is_foreign(self) -> bool:
        """True when the symbol carries a foreign exchange suffix."""
        return _SUFFIX_RE.match(self.symbol) is not None

    @property
    def exchange_suffix(self) -> str | None:
        m = _SUFFIX_RE.match(self.symbol)
        return m.group("suffix") if m else None

    @property
    def base_symbol(self) -> str:
        """Symbol without its exchange suffix."""
        m = _SUFFIX_RE.match(self.symbol)
        return m.group("base") if m else self.symbol

    def variant(self, role: ProviderRole) -> str:
        """Symbol to use against ``role``, defaulting to the canonical one."""
        return self.variants.get(role, self.symbol)

    def with_variant(self, role: ProviderRole, symbol: str, force: bool = False) -> bool:
        """Record a provider spelling.

        An existing variant is kept unless ``force`` is set. Returns True
        when the variant was written.
        """
        if role in self.variants and not force:
            return False
        self.variants[role] = symbol.upper()
        return True
