"""
Discovery service for the add-device flow.

Enumerates reachable devices within a hard time budget and turns
transport failures into a single user-facing message.
"""
import asyncio
import logging
import platform
from enum import Enum
from typing import Dict, List, Optional

from ..config import MonitorSettings, get_monitor_settings
from ..devices.models import Device
from ..exceptions import DiscoveryError, DiscoveryTimeoutError
from ..transport import TelemetryTransport

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = "Failed to fetch devices."
PERMISSION_HINT = (
    " If you are using macOS, please make sure Bluetooth permission is granted."
)
PERMISSION_MARKER = "Bluetooth permission"


class DiscoveryStatus(str, Enum):
    """Status of the most recent discovery."""
    IDLE = "idle"
    DISCOVERING = "discovering"
    COMPLETED = "completed"
    FAILED = "failed"


def _discard_late_result(task: "asyncio.Future") -> None:
    """Consume the outcome of an abandoned enumeration."""
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.debug(f"Ignoring late discovery error: {error}")
    else:
        logger.debug("Ignoring late discovery result")


class DiscoveryService:
    """
    Service for discovering devices that can be registered.

    Races the transport's enumeration against a timer. Whichever
    finishes first wins; an enumeration that loses is cancelled and
    its eventual result is never reported.
    """

    def __init__(
        self,
        transport: TelemetryTransport,
        settings: Optional[MonitorSettings] = None,
        platform_name: Optional[str] = None,
    ):
        """
        Initialize the discovery service.

        Args:
            transport: Transport used to enumerate devices.
            settings: Monitor settings.
            platform_name: Operating system name, as returned by
                platform.system(). Detected if not provided.
        """
        self.transport = transport
        self.settings = settings or get_monitor_settings()
        self.platform_name = platform_name or platform.system()

        self._status = DiscoveryStatus.IDLE
        self._last_devices: List[Device] = []
        self._last_error: Optional[str] = None

    @property
    def status(self) -> DiscoveryStatus:
        return self._status

    @property
    def last_devices(self) -> List[Device]:
        """Devices found by the most recent successful discovery."""
        return list(self._last_devices)

    @property
    def last_error(self) -> Optional[str]:
        """User-facing message of the most recent failure, if any."""
        return self._last_error

    @property
    def needs_permission_hint(self) -> bool:
        return self.platform_name in self.settings.discovery.permission_platforms

    def _with_permission_hint(self, message: str) -> str:
        if self.needs_permission_hint and PERMISSION_MARKER not in message:
            return message + PERMISSION_HINT
        return message

    def _fail(self, message: str) -> None:
        self._status = DiscoveryStatus.FAILED
        self._last_error = message
        logger.warning(f"Device discovery failed: {message}")

    async def discover(self, timeout_ms: Optional[int] = None) -> List[Device]:
        """
        Enumerate currently discoverable devices.

        Args:
            timeout_ms: Time budget in milliseconds. Defaults to the
                configured discovery timeout.

        Returns:
            Discovered devices, de-duplicated by id in transport order.

        Raises:
            DiscoveryTimeoutError: If enumeration exceeded the budget.
            DiscoveryError: If the transport failed.
        """
        timeout_ms = timeout_ms or self.settings.discovery.timeout_ms
        self._status = DiscoveryStatus.DISCOVERING
        self._last_error = None

        logger.info(f"Starting device discovery (timeout={timeout_ms}ms)")
        enumeration = asyncio.ensure_future(self.transport.enumerate())

        try:
            done, _ = await asyncio.wait({enumeration}, timeout=timeout_ms / 1000)
        except asyncio.CancelledError:
            enumeration.cancel()
            self._status = DiscoveryStatus.IDLE
            raise

        if not done:
            enumeration.cancel()
            enumeration.add_done_callback(_discard_late_result)
            message = self._with_permission_hint(TIMEOUT_MESSAGE)
            self._fail(message)
            raise DiscoveryTimeoutError(message, timeout_ms=timeout_ms)

        try:
            found = enumeration.result()
        except Exception as e:
            message = self._with_permission_hint(str(e) or e.__class__.__name__)
            self._fail(message)
            raise DiscoveryError(message) from e

        unique: Dict[str, Device] = {}
        for device in found or []:
            unique.setdefault(device.id, device)
        devices = list(unique.values())

        self._last_devices = devices
        self._status = DiscoveryStatus.COMPLETED
        logger.info(f"Discovery completed: found {len(devices)} devices")
        return devices

    def find(self, device_id: str) -> Optional[Device]:
        """Find a device from the most recent discovery by id."""
        for device in self._last_devices:
            if device.id == device_id:
                return device
        return None
