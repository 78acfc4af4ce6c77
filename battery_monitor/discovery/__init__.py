"""
Device discovery module.

Bounded-time enumeration of devices for the add-device flow.
"""
from .discovery_service import (
    PERMISSION_HINT,
    TIMEOUT_MESSAGE,
    DiscoveryService,
    DiscoveryStatus,
)

__all__ = [
    "DiscoveryService",
    "DiscoveryStatus",
    "PERMISSION_HINT",
    "TIMEOUT_MESSAGE",
]
