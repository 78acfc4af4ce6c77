"""
Abstract interface for peripheral transports.

A transport enumerates reachable devices and fetches battery telemetry
for a known device. Implementations live outside the monitor (BLE
backends, simulators) and should raise TransportUnavailableError on
failure.
"""
from abc import ABC, abstractmethod
from typing import List

from .devices.models import Device, RawTelemetry


class TelemetryTransport(ABC):
    """Source of devices and battery telemetry."""

    @abstractmethod
    async def enumerate(self) -> List[Device]:
        """
        List currently discoverable devices.

        May take a long time or never return; callers bound it with a
        timeout.
        """
        ...

    @abstractmethod
    async def fetch_telemetry(self, device_id: str) -> RawTelemetry:
        """
        Fetch current battery telemetry for a device.

        Returns a single reading or a sequence of readings, one per
        independently powered component.
        """
        ...

    async def close(self) -> None:
        """Release transport resources."""
        pass
