"""closestrpc: keep track of the fastest of several JSON-RPC providers."""

from closestrpc.balancer import ClosestProviderSelector
from closestrpc.errors import (
    AllProvidersFailed,
    BalancerError,
    ConfigurationError,
    NotReadyError,
    ProbeFailure,
)
from closestrpc.models import BalancerConfig, LifecycleState, Provider, SelectionSnapshot

__version__ = "0.1.0"

__all__ = [
    "AllProvidersFailed",
    "BalancerConfig",
    "BalancerError",
    "ClosestProviderSelector",
    "ConfigurationError",
    "LifecycleState",
    "NotReadyError",
    "ProbeFailure",
    "Provider",
    "SelectionSnapshot",
    "__version__",
]
