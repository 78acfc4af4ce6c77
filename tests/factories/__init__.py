"""
Test data factories for the battery monitor.

Provides factory classes for generating test data.
"""
from .device_factory import (
    BatteryReadingFactory,
    DeviceFactory,
    RegisteredDeviceFactory,
    RegistryRecordFactory,
)

__all__ = [
    "BatteryReadingFactory",
    "DeviceFactory",
    "RegisteredDeviceFactory",
    "RegistryRecordFactory",
]
