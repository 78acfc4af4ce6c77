"""
Shared pytest fixtures for battery monitor tests.

Provides fixtures for:
- Fast monitor settings
- Scripted transport simulator
- Mock notifier
- In-memory registry store
- Wired refresher, discovery and scheduler
"""
from unittest.mock import AsyncMock

import pytest

from battery_monitor.config import (
    DiscoverySettings,
    MonitorSettings,
    NotificationSettings,
    PollingSettings,
    RefreshConfig,
)
from battery_monitor.devices.refresh import DeviceRefresher
from battery_monitor.discovery.discovery_service import DiscoveryService
from battery_monitor.registry.scheduler import RegistryScheduler
from battery_monitor.registry.store import InMemoryRegistryStore

from simulators import ScriptedTransport


# ============================================================================
# Settings Fixtures
# ============================================================================

@pytest.fixture
def settings() -> MonitorSettings:
    """Monitor settings with short intervals and no retry delay."""
    return MonitorSettings(
        polling=PollingSettings(interval_ms=20, retry_delay_ms=0),
        notifications=NotificationSettings(),
        discovery=DiscoverySettings(timeout_ms=200, permission_platforms=["Darwin"]),
    )


@pytest.fixture
def refresh_config() -> RefreshConfig:
    """Refresh config with default budgets and no retry delay."""
    return RefreshConfig(retry_delay_ms=0)


# ============================================================================
# Collaborator Fixtures
# ============================================================================

@pytest.fixture
def transport() -> ScriptedTransport:
    """Scripted transport with no devices."""
    return ScriptedTransport()


@pytest.fixture
def notifier():
    """Mock notifier recording delivered messages."""
    notifier = AsyncMock()
    notifier.notify = AsyncMock()
    return notifier


@pytest.fixture
def store() -> InMemoryRegistryStore:
    """Empty in-memory registry store."""
    return InMemoryRegistryStore()


# ============================================================================
# Component Fixtures
# ============================================================================

@pytest.fixture
def refresher(transport, notifier) -> DeviceRefresher:
    return DeviceRefresher(transport, notifier)


@pytest.fixture
def discovery(transport, settings) -> DiscoveryService:
    """Discovery service on a platform without the permission hint."""
    return DiscoveryService(transport, settings, platform_name="Linux")


@pytest.fixture
def scheduler(refresher, store, discovery, settings) -> RegistryScheduler:
    return RegistryScheduler(
        refresher=refresher,
        store=store,
        discovery=discovery,
        settings=settings,
    )


@pytest.fixture
def sent(notifier):
    """Return a function listing messages delivered to the notifier, in order."""
    def messages():
        return [call.args[0] for call in notifier.notify.await_args_list]
    return messages
