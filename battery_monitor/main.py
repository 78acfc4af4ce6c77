"""
Battery Monitor - Main Entry Point.

Wires the monitoring engine together:
1. Loads registered devices from the store
2. Refreshes their battery telemetry on a fixed interval
3. Notifies the user about connectivity and low battery transitions
4. Discovers and registers new devices on request
"""
import asyncio
import logging
import signal
import sys
from typing import Any, Dict, Optional

from .config import MonitorSettings, get_monitor_settings
from .devices.refresh import DeviceRefresher
from .discovery.discovery_service import DiscoveryService
from .notifications.notifier import LoggingNotifier, Notifier
from .registry.scheduler import RegistryScheduler
from .registry.store import RegistryStore
from .transport import TelemetryTransport

logger = logging.getLogger(__name__)


def configure_logging(settings: Optional[MonitorSettings] = None) -> None:
    """Configure root logging from monitor settings."""
    settings = settings or get_monitor_settings()
    level = logging.DEBUG if settings.debug else settings.log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )


class BatteryMonitor:
    """
    Main battery monitor orchestrator.

    Owns the refresher, discovery service and registry scheduler for
    one transport, and runs them until shutdown.
    """

    def __init__(
        self,
        transport: TelemetryTransport,
        store: Optional[RegistryStore] = None,
        notifier: Optional[Notifier] = None,
        settings: Optional[MonitorSettings] = None,
    ):
        """
        Initialize the battery monitor.

        Args:
            transport: Source of devices and telemetry.
            store: Registry persistence. In-memory if not provided.
            notifier: Notification sink. Logs messages if not provided.
            settings: Monitor settings.
        """
        self.settings = settings or get_monitor_settings()
        self.transport = transport
        self.notifier = notifier or LoggingNotifier()

        self.refresher = DeviceRefresher(transport, self.notifier)
        self.discovery = DiscoveryService(transport, self.settings)
        self.scheduler = RegistryScheduler(
            refresher=self.refresher,
            store=store,
            discovery=self.discovery,
            settings=self.settings,
        )

        # State
        self._running = False
        self._shutdown_event = asyncio.Event()

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Load the registry and start periodic refresh."""
        if self._running:
            logger.warning(f"{self.settings.app_name} already running")
            return

        logger.info(f"Starting {self.settings.app_name}...")
        self._shutdown_event.clear()

        await self.scheduler.load()
        await self.scheduler.start()

        self._running = True
        logger.info(
            f"{self.settings.app_name} started with "
            f"{self.scheduler.device_count} registered devices"
        )

    async def stop(self) -> None:
        """Stop refreshing and release the transport."""
        if not self._running:
            return

        logger.info(f"Stopping {self.settings.app_name}...")
        self._running = False

        await self.scheduler.stop()
        await self.transport.close()

        self._shutdown_event.set()
        logger.info(f"{self.settings.app_name} stopped")

    async def serve_forever(self) -> None:
        """Run until shutdown."""
        await self._shutdown_event.wait()

    def get_stats(self) -> Dict[str, Any]:
        """Get monitor statistics."""
        return {
            "running": self._running,
            "registry": self.scheduler.get_stats(),
            "discovery": {
                "status": self.discovery.status.value,
                "last_error": self.discovery.last_error,
            },
        }


def setup_signal_handlers(monitor: BatteryMonitor, loop: asyncio.AbstractEventLoop):
    """Setup signal handlers for graceful shutdown."""
    def signal_handler():
        logger.info("Received shutdown signal")
        loop.create_task(monitor.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, signal_handler)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            signal.signal(sig, lambda s, f: signal_handler())


async def run(monitor: BatteryMonitor) -> None:
    """Start the monitor and serve until a shutdown signal."""
    setup_signal_handlers(monitor, asyncio.get_running_loop())

    try:
        await monitor.start()
        await monitor.serve_forever()
    except KeyboardInterrupt:
        logger.info("Interrupted")
    finally:
        await monitor.stop()
