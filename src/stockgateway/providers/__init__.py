"""Upstream provider registry."""

from __future__ import annotations

from stockgateway.models.enums import ProviderRole
from stockgateway.providers.base import BaseProvider

# Lazy registry: classes are imported on demand.
PROVIDER_CLASSES: dict[ProviderRole, str] = {
    ProviderRole.PRIMARY: "stockgateway.providers.finnhub.FinnhubProvider",
    ProviderRole.SECONDARY: "stockgateway.providers.yahoo.YahooProvider",
    ProviderRole.TERTIARY: "stockgateway.providers.alphavantage.AlphaVantageProvider",
}


def create_provider(role: ProviderRole, **kwargs) -> BaseProvider:
    """Instantiate the provider filling ``role``, forwarding kwargs to its constructor."""
    import importlib

    dotted = PROVIDER_CLASSES[role]
    module_path, cls_name = dotted.rsplit(".", 1)
    module = importlib.import_module(module_path)
    cls = getattr(module, cls_name)
    return cls(**kwargs)


__all__ = ["BaseProvider", "PROVIDER_CLASSES", "create_provider"]
