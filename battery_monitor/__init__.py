"""
Battery Monitor.

Keeps battery telemetry for user-registered peripherals up to date,
tracks their connectivity and notifies on connect, disconnect and low
battery transitions.
"""
from .config import MonitorSettings, RefreshConfig, get_monitor_settings
from .devices import BatteryReading, Device, DeviceRefresher, RegisteredDevice
from .discovery import DiscoveryService
from .exceptions import (
    DeviceNotFoundError,
    DiscoveryError,
    DiscoveryTimeoutError,
    MonitorException,
    TransportUnavailableError,
)
from .main import BatteryMonitor, configure_logging, run
from .notifications import LoggingNotifier, Notifier
from .registry import InMemoryRegistryStore, RegistryScheduler, RegistryStore
from .transport import TelemetryTransport

__version__ = "0.1.0"

__all__ = [
    "BatteryMonitor",
    "BatteryReading",
    "Device",
    "DeviceNotFoundError",
    "DeviceRefresher",
    "DiscoveryError",
    "DiscoveryService",
    "DiscoveryTimeoutError",
    "InMemoryRegistryStore",
    "LoggingNotifier",
    "MonitorException",
    "MonitorSettings",
    "Notifier",
    "RefreshConfig",
    "RegisteredDevice",
    "RegistryScheduler",
    "RegistryStore",
    "TelemetryTransport",
    "TransportUnavailableError",
    "configure_logging",
    "get_monitor_settings",
    "run",
]
