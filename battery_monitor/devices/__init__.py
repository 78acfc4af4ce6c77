"""
Device module.

Provides the device data model, transition detection and the
per-device refresh state machine.
"""
from .models import (
    BatteryReading,
    Device,
    RegisteredDevice,
    TelemetrySnapshot,
    normalize_snapshot,
)
from .transitions import (
    LOW_BATTERY_THRESHOLD,
    EdgeKind,
    NotificationEdge,
    detect_low_battery_edges,
    format_edge_message,
    is_low_battery,
)
from .refresh import DeviceRefresher, RefreshState

__all__ = [
    "BatteryReading",
    "Device",
    "RegisteredDevice",
    "TelemetrySnapshot",
    "normalize_snapshot",
    "LOW_BATTERY_THRESHOLD",
    "EdgeKind",
    "NotificationEdge",
    "detect_low_battery_edges",
    "format_edge_message",
    "is_low_battery",
    "DeviceRefresher",
    "RefreshState",
]
