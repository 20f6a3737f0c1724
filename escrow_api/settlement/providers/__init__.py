from .base import BaseSettlementProvider
from .custody_api import CustodyApiProvider
from .ledger import LedgerProvider

def get_settlement_provider(provider_name: str, **kwargs) -> BaseSettlementProvider:
    """
    Factory function to get settlement provider instances.

    Args:
        provider_name: Name of the settlement provider
        **kwargs: Additional configuration

    Returns:
        BaseSettlementProvider: Settlement provider instance
    """
    providers = {
        'ledger': LedgerProvider,
        'custody_api': CustodyApiProvider,
    }

    if provider_name not in providers:
        raise ValueError(f"Unknown settlement provider: {provider_name}")

    return providers[provider_name](**kwargs)
