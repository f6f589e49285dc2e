from .base import ProviderClient
from .mock import MockProviderClient
from .teller import TellerClient
from .factory import get_provider_adapter

__all__ = [
    "ProviderClient",
    "MockProviderClient",
    "TellerClient",
    "get_provider_adapter",
]
