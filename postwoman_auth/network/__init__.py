"""
LOT 10: Network

Timeouts du transport HTTP:
- Connexion 10 secondes max
- Requête 30 secondes max (configurable par endpoint)
"""

from .interfaces import (
    # Enums
    TimeoutType,
    # Data classes
    TimeoutConfig,
    # Interfaces
    ITimeoutManager,
)
from .timeout_manager import (
    TimeoutManager,
    InvalidTimeoutError,
)

__all__ = [
    "TimeoutType",
    "TimeoutConfig",
    "ITimeoutManager",
    "TimeoutManager",
    "InvalidTimeoutError",
]
