"""
Per-device refresh state machine.

Brings one registered device's telemetry up to date with bounded
retries, flips its connectivity flag and emits notifications for the
transitions it observes.
"""
import asyncio
import logging
from enum import Enum
from typing import List, Optional

from ..config import RefreshConfig
from ..notifications.notifier import Notifier, send_notification
from ..transport import TelemetryTransport
from .models import Device, RegisteredDevice, TelemetrySnapshot, normalize_snapshot
from .transitions import (
    EdgeKind,
    NotificationEdge,
    detect_low_battery_edges,
    format_edge_message,
)

logger = logging.getLogger(__name__)


class RefreshState(str, Enum):
    """State of a single refresh."""
    PROBING = "probing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class DeviceRefresher:
    """
    Refreshes registered devices against a transport.

    The refresher never touches registry storage: it receives the last
    known aggregate and returns the updated one for the caller to
    commit.
    """

    def __init__(
        self,
        transport: TelemetryTransport,
        notifier: Optional[Notifier] = None,
    ):
        """
        Initialize the refresher.

        Args:
            transport: Transport used to fetch telemetry.
            notifier: Sink for transition messages.
        """
        self.transport = transport
        self.notifier = notifier

    async def _fetch(self, device_id: str) -> TelemetrySnapshot:
        raw = await self.transport.fetch_telemetry(device_id)
        return normalize_snapshot(raw)

    async def refresh(
        self,
        previous: RegisteredDevice,
        config: Optional[RefreshConfig] = None,
    ) -> RegisteredDevice:
        """
        Run one refresh cycle for a device.

        Args:
            previous: Aggregate as stored before this cycle began.
            config: Configuration captured at cycle start.

        Returns:
            The updated aggregate.
        """
        config = config or RefreshConfig()
        was_disconnected = previous.is_disconnected
        max_attempts = config.attempts_for(was_disconnected)
        retry_delay = config.retry_delay_ms / 1000

        state = RefreshState.PROBING
        snapshot: TelemetrySnapshot = ()
        attempt = 0

        while state == RefreshState.PROBING:
            attempt += 1
            logger.debug(
                f"Updating battery info for {previous.id} "
                f"(attempt {attempt} of {max_attempts})"
            )
            try:
                snapshot = await self._fetch(previous.id)
                state = RefreshState.SUCCEEDED
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.debug(f"Attempt {attempt} for {previous.id} failed: {e}")
                if attempt >= max_attempts:
                    state = RefreshState.FAILED
                else:
                    await asyncio.sleep(retry_delay)

        if state == RefreshState.FAILED:
            return await self._on_failed(previous, config, attempt)
        return await self._on_succeeded(previous, snapshot, config)

    async def _on_succeeded(
        self,
        previous: RegisteredDevice,
        snapshot: TelemetrySnapshot,
        config: RefreshConfig,
    ) -> RegisteredDevice:
        updated = previous.with_telemetry(snapshot)

        edges: List[NotificationEdge] = []
        if previous.is_disconnected:
            logger.info(f"Device {previous.id} reconnected")
            if config.should_notify_connected:
                edges.append(NotificationEdge(EdgeKind.CONNECTED))

        if config.should_notify_low_battery:
            low = detect_low_battery_edges(
                previous.battery_infos, snapshot, config.low_battery_threshold
            )
            edges.extend(
                NotificationEdge(EdgeKind.LOW_BATTERY_ONSET, index)
                for index in sorted(low)
            )

        for edge in edges:
            if edge.kind == EdgeKind.LOW_BATTERY_ONSET:
                logger.info(f"{previous.name} has low battery (reading {edge.index})")
            await send_notification(
                self.notifier,
                format_edge_message(previous.name, edge, snapshot),
            )

        return updated

    async def _on_failed(
        self,
        previous: RegisteredDevice,
        config: RefreshConfig,
        attempts: int,
    ) -> RegisteredDevice:
        updated = previous.as_disconnected()

        if previous.is_disconnected:
            logger.debug(f"Device {previous.id} still unreachable")
            return updated

        logger.warning(
            f"Device {previous.id} marked disconnected after {attempts} failed attempts"
        )
        if config.should_notify_disconnected:
            await send_notification(
                self.notifier,
                format_edge_message(
                    previous.name, NotificationEdge(EdgeKind.DISCONNECTED)
                ),
            )
        return updated

    async def fetch_initial(self, device: Device) -> RegisteredDevice:
        """
        Fetch telemetry once for a newly registered device.

        A single attempt with no retries and no notifications. A device
        whose first fetch fails is still returned, marked disconnected.

        Args:
            device: Device being registered.

        Returns:
            The initial aggregate.
        """
        try:
            snapshot = await self._fetch(device.id)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Initial fetch for {device.id} failed: {e}")
            return RegisteredDevice(device=device, is_disconnected=True)

        return RegisteredDevice(device=device, battery_infos=snapshot)
