"""
Registry scheduler for battery refresh cycles.

Owns the authoritative registry of monitored devices, drives periodic
and on-demand refresh cycles across all of them concurrently and is
the single point where refreshed aggregates are committed.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Tuple, Union

from ..config import MonitorSettings, RefreshConfig, get_monitor_settings
from ..devices.models import Device, RegisteredDevice
from ..devices.refresh import DeviceRefresher
from ..discovery.discovery_service import DiscoveryService
from ..exceptions import DeviceNotFoundError
from .store import InMemoryRegistryStore, RegistryStore

logger = logging.getLogger(__name__)

RegistryCallback = Callable[[List[RegisteredDevice]], Awaitable[None]]


class RegistryScheduler:
    """
    Manages the device registry and its refresh cycles.

    Features:
    - Periodic refresh on the configured interval
    - On-demand reload awaited by the caller
    - Key-wise commits, so concurrent refreshes never drop each
      other's updates
    - At most one in-flight refresh per device
    - Persistence gated on the initial load
    """

    def __init__(
        self,
        refresher: DeviceRefresher,
        store: Optional[RegistryStore] = None,
        discovery: Optional[DiscoveryService] = None,
        settings: Optional[MonitorSettings] = None,
    ):
        """
        Initialize the registry scheduler.

        Args:
            refresher: Per-device refresh state machine.
            store: Registry persistence. In-memory if not provided.
            discovery: Discovery service backing registration by id.
            settings: Monitor settings.
        """
        self.refresher = refresher
        self.store = store or InMemoryRegistryStore()
        self.discovery = discovery
        self.settings = settings or get_monitor_settings()

        # Registry, in registration order
        self._registry: Dict[str, RegisteredDevice] = {}

        # In-flight refresh per device, with the entry it started from
        self._inflight: Dict[str, Tuple[RegisteredDevice, asyncio.Task]] = {}
        self._refresh_tasks: Set[asyncio.Task] = set()

        # Callbacks
        self._on_registry_changed: Optional[RegistryCallback] = None

        # State
        self._loaded = False
        self._running = False
        self._active_cycles = 0
        self._cycles_completed = 0
        self._loop_task: Optional[asyncio.Task] = None
        self._shutdown_event = asyncio.Event()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def load(self) -> None:
        """
        Load registered devices from the store.

        Saving is disabled until this completes, so an empty in-memory
        registry never overwrites stored devices during startup.
        """
        records = await self.store.load()

        loaded = 0
        for record in records or []:
            try:
                device = RegisteredDevice.from_dict(record)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping invalid registry record {record!r}: {e}")
                continue
            if device.id in self._registry:
                continue
            self._registry[device.id] = device
            loaded += 1

        self._loaded = True
        logger.info(f"Loaded {loaded} registered devices")
        await self._registry_changed()

    async def start(self) -> None:
        """Start periodic refresh cycles."""
        if self._running:
            logger.warning("Registry scheduler already running")
            return

        logger.info(
            f"Starting registry scheduler "
            f"(interval={self.settings.polling.interval_ms}ms)"
        )
        self._running = True
        self._shutdown_event.clear()
        self._loop_task = asyncio.create_task(
            self._refresh_loop(),
            name="registry_refresh_loop",
        )

    async def stop(self) -> None:
        """Stop periodic refresh and cancel in-flight refreshes."""
        logger.info("Stopping registry scheduler")
        self._running = False
        self._shutdown_event.set()

        if self._loop_task and not self._loop_task.done():
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
        self._loop_task = None

        pending = [task for task in self._refresh_tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._inflight.clear()
        self._refresh_tasks.clear()

        logger.info("Registry scheduler stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def is_refreshing(self) -> bool:
        """True while any refresh cycle is in progress."""
        return self._active_cycles > 0

    async def _refresh_loop(self) -> None:
        """Run a refresh cycle every polling interval until stopped."""
        logger.debug("Starting refresh loop")

        while self._running:
            interval = self.settings.polling.interval_ms / 1000

            try:
                await asyncio.wait_for(
                    self._shutdown_event.wait(),
                    timeout=interval,
                )
                # Shutdown event was set
                break
            except asyncio.TimeoutError:
                pass

            try:
                await self.run_cycle()
            except asyncio.CancelledError:
                logger.debug("Refresh loop cancelled")
                break
            except Exception as e:
                logger.error(f"Unexpected error in refresh cycle: {e}")

        logger.debug("Refresh loop ended")

    # ------------------------------------------------------------------
    # Refresh cycles
    # ------------------------------------------------------------------

    async def run_cycle(self) -> List[RegisteredDevice]:
        """
        Refresh every registered device concurrently.

        Configuration is captured once at cycle start. Each device's
        aggregate is committed as soon as its own refresh finishes; a
        failure in one device never affects the others.

        Returns:
            Registry snapshot after the cycle settled.
        """
        config = RefreshConfig.from_settings(self.settings)
        device_ids = list(self._registry)
        if not device_ids:
            return self.get_registry()

        self._active_cycles += 1
        try:
            results = await asyncio.gather(
                *(self._refresh_device(device_id, config) for device_id in device_ids),
                return_exceptions=True,
            )
        finally:
            self._active_cycles -= 1

        for device_id, result in zip(device_ids, results):
            if isinstance(result, asyncio.CancelledError):
                logger.debug(f"Refresh cancelled for {device_id}")
            elif isinstance(result, BaseException):
                logger.error(f"Refresh failed for {device_id}: {result!r}")

        self._cycles_completed += 1
        logger.debug(f"Refresh cycle settled for {len(device_ids)} devices")
        await self._registry_changed()
        return self.get_registry()

    async def reload(self) -> List[RegisteredDevice]:
        """
        Refresh all devices on demand.

        Returns:
            Registry snapshot after the reload settled.
        """
        logger.info(f"Reloading battery info for {len(self._registry)} devices")
        return await self.run_cycle()

    async def _refresh_device(
        self,
        device_id: str,
        config: RefreshConfig,
    ) -> Optional[RegisteredDevice]:
        previous = self._registry.get(device_id)
        if previous is None:
            return None

        inflight = self._inflight.get(device_id)
        if inflight is not None and inflight[0] is previous and not inflight[1].done():
            logger.debug(f"Refresh already in flight for {device_id}, joining it")
            task = inflight[1]
        else:
            task = asyncio.create_task(
                self._refresh_and_commit(previous, config),
                name=f"refresh_{device_id}",
            )
            self._inflight[device_id] = (previous, task)
            self._refresh_tasks.add(task)
            task.add_done_callback(
                lambda done, key=device_id: self._clear_inflight(key, done)
            )

        # A cancelled waiter must not cancel the shared refresh
        return await asyncio.shield(task)

    def _clear_inflight(self, device_id: str, task: asyncio.Task) -> None:
        self._refresh_tasks.discard(task)
        inflight = self._inflight.get(device_id)
        if inflight is not None and inflight[1] is task:
            del self._inflight[device_id]

    async def _refresh_and_commit(
        self,
        previous: RegisteredDevice,
        config: RefreshConfig,
    ) -> RegisteredDevice:
        updated = await self.refresher.refresh(previous, config)
        self._commit(previous, updated)
        return updated

    def _commit(self, previous: RegisteredDevice, updated: RegisteredDevice) -> bool:
        """
        Replace one registry entry with its refreshed aggregate.

        The commit is dropped if the entry was unregistered or replaced
        while the refresh was running.
        """
        if self._registry.get(updated.id) is not previous:
            logger.debug(f"Dropping refresh result for {updated.id}: entry changed")
            return False
        self._registry[updated.id] = updated
        return True

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    async def discover_candidates(self, timeout_ms: Optional[int] = None) -> List[Device]:
        """
        Discover devices that are not registered yet.

        Raises:
            DiscoveryError: If discovery failed or timed out.
        """
        if self.discovery is None:
            raise RuntimeError("No discovery service configured")
        devices = await self.discovery.discover(timeout_ms)
        return [device for device in devices if device.id not in self._registry]

    async def register_device(
        self,
        device: Union[Device, str],
    ) -> RegisteredDevice:
        """
        Register a device for monitoring.

        Performs exactly one telemetry fetch before inserting the
        device. A device whose first fetch fails is still registered,
        marked disconnected.

        Args:
            device: Device to register, or the id of a device found by
                the most recent discovery.

        Returns:
            The registered aggregate.

        Raises:
            DeviceNotFoundError: If an id is not in the last discovery.
        """
        if not isinstance(device, Device):
            found = self.discovery.find(device) if self.discovery else None
            if found is None:
                raise DeviceNotFoundError(device)
            device = found

        existing = self._registry.get(device.id)
        if existing is not None:
            logger.info(f"Device {device.id} already registered")
            return existing

        registered = await self.refresher.fetch_initial(device)

        # Registered concurrently while the initial fetch was running
        if device.id in self._registry:
            return self._registry[device.id]

        self._registry[device.id] = registered
        logger.info(
            f"Registered device {device.id} ({device.name}), "
            f"disconnected={registered.is_disconnected}"
        )
        await self._registry_changed()
        return registered

    async def unregister_device(self, device_id: str) -> None:
        """
        Stop monitoring a device.

        Raises:
            DeviceNotFoundError: If the device is not registered.
        """
        if self._registry.pop(device_id, None) is None:
            raise DeviceNotFoundError(device_id)

        logger.info(f"Unregistered device {device_id}")
        await self._registry_changed()

    # ------------------------------------------------------------------
    # Persistence and change notification
    # ------------------------------------------------------------------

    async def _registry_changed(self) -> None:
        await self._save()

        if self._on_registry_changed:
            try:
                await self._on_registry_changed(self.get_registry())
            except Exception as e:
                logger.error(f"Error in registry_changed callback: {e}")

    async def _save(self) -> None:
        if not self._loaded:
            logger.debug("Registry not loaded yet, skipping save")
            return

        try:
            await self.store.save([device.to_dict() for device in self._registry.values()])
            logger.debug(f"Saved {len(self._registry)} registered devices")
        except Exception as e:
            logger.error(f"Error saving registry: {e}")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_registry(self) -> List[RegisteredDevice]:
        """Snapshot of registered devices in registration order."""
        return list(self._registry.values())

    def get_device(self, device_id: str) -> Optional[RegisteredDevice]:
        return self._registry.get(device_id)

    @property
    def device_count(self) -> int:
        return len(self._registry)

    def update_settings(self, settings: MonitorSettings) -> None:
        """Use new settings from the next refresh cycle on."""
        self.settings = settings
        logger.info(
            f"Settings updated (interval={settings.polling.interval_ms}ms, "
            f"notifications={settings.notifications.enabled})"
        )

    def get_stats(self) -> Dict[str, Any]:
        """
        Get scheduler statistics.

        Returns:
            Dictionary of scheduler stats.
        """
        disconnected = sum(1 for d in self._registry.values() if d.is_disconnected)
        return {
            "running": self._running,
            "loaded": self._loaded,
            "refreshing": self.is_refreshing,
            "total_devices": len(self._registry),
            "disconnected_devices": disconnected,
            "inflight_refreshes": sum(
                1 for task in self._refresh_tasks if not task.done()
            ),
            "cycles_completed": self._cycles_completed,
        }

    def set_on_registry_changed(self, callback: RegistryCallback) -> None:
        """Set callback for registry change events."""
        self._on_registry_changed = callback
