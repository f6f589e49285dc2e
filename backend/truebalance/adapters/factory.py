"""Factory for creating provider clients."""
from typing import Optional
from truebalance.adapters.base import ProviderClient
from truebalance.adapters.mock import MockProviderClient
from truebalance.adapters.teller import TellerClient
from truebalance.config import Settings, settings as default_settings
from truebalance.errors import ConfigurationError


def get_provider_adapter(config: Optional[Settings] = None) -> ProviderClient:
    """
    Create the provider client named by ``config.provider``.

    Args:
        config: Application settings (defaults to the module-level settings)

    Returns:
        ProviderClient instance
    """
    config = config or default_settings
    provider = config.provider.lower()
    if provider == "mock":
        return MockProviderClient.with_sample_data()
    elif provider == "teller":
        return TellerClient(config)
    else:
        raise ConfigurationError(f"Unknown provider: {config.provider}")
