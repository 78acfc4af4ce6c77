"""
Unit tests for DiscoveryService.

Tests bounded enumeration, error messages and the permission hint.
"""
import asyncio

import pytest

from battery_monitor.discovery.discovery_service import (
    PERMISSION_HINT,
    TIMEOUT_MESSAGE,
    DiscoveryService,
    DiscoveryStatus,
)
from battery_monitor.exceptions import (
    DiscoveryError,
    DiscoveryTimeoutError,
    TransportUnavailableError,
)

from factories import DeviceFactory


@pytest.fixture
def mac_discovery(transport, settings):
    """Discovery service on a platform that needs the permission hint."""
    return DiscoveryService(transport, settings, platform_name="Darwin")


class TestDiscover:
    """Test successful discovery."""

    @pytest.mark.asyncio
    async def test_returns_devices(self, transport, discovery):
        """Test discovery returns enumerated devices and records them."""
        devices = DeviceFactory.build_batch(3)
        transport.devices = devices

        result = await discovery.discover()

        assert result == devices
        assert discovery.last_devices == devices
        assert discovery.status == DiscoveryStatus.COMPLETED
        assert discovery.last_error is None

    @pytest.mark.asyncio
    async def test_deduplicates_by_id(self, transport, discovery):
        """Test duplicate ids keep the first occurrence in order."""
        first = DeviceFactory(id="A", name="First")
        transport.devices = [first, DeviceFactory(id="B"), DeviceFactory(id="A", name="Again")]

        result = await discovery.discover()

        assert [d.id for d in result] == ["A", "B"]
        assert result[0] is first

    @pytest.mark.asyncio
    async def test_find(self, transport, discovery):
        """Test find looks up devices from the last discovery."""
        device = DeviceFactory()
        transport.devices = [device]

        assert discovery.find(device.id) is None
        await discovery.discover()

        assert discovery.find(device.id) == device
        assert discovery.find("missing") is None


class TestDiscoveryTimeout:
    """Test the enumeration time budget."""

    @pytest.mark.asyncio
    async def test_never_returning_enumeration_times_out(self, transport, discovery):
        """Test an enumeration that never returns yields one timeout error."""
        transport.enumerate_never_returns = True

        with pytest.raises(DiscoveryTimeoutError) as exc_info:
            await discovery.discover(timeout_ms=20)

        assert exc_info.value.message == TIMEOUT_MESSAGE
        assert exc_info.value.code == "DISCOVERY_TIMEOUT"
        assert exc_info.value.timeout_ms == 20
        assert discovery.status == DiscoveryStatus.FAILED
        assert discovery.last_error == TIMEOUT_MESSAGE

    @pytest.mark.asyncio
    async def test_late_result_is_ignored(self, transport, discovery):
        """Test a result arriving after the timeout is never reported."""
        transport.devices = [DeviceFactory()]
        transport.enumerate_delay = 0.1

        with pytest.raises(DiscoveryTimeoutError):
            await discovery.discover(timeout_ms=10)
        await asyncio.sleep(0.15)

        assert discovery.last_devices == []
        assert discovery.status == DiscoveryStatus.FAILED

    @pytest.mark.asyncio
    async def test_timeout_includes_permission_hint_on_mac(self, transport, mac_discovery):
        """Test the timeout message carries the permission hint on macOS."""
        transport.enumerate_never_returns = True

        with pytest.raises(DiscoveryTimeoutError) as exc_info:
            await mac_discovery.discover(timeout_ms=10)

        assert exc_info.value.message == TIMEOUT_MESSAGE + PERMISSION_HINT

    @pytest.mark.asyncio
    async def test_uses_configured_timeout(self, transport, discovery):
        """Test the configured timeout applies when none is given."""
        transport.enumerate_never_returns = True

        with pytest.raises(DiscoveryTimeoutError) as exc_info:
            await discovery.discover()

        assert exc_info.value.timeout_ms == 200


class TestDiscoveryErrors:
    """Test transport failures during discovery."""

    @pytest.mark.asyncio
    async def test_transport_error_message(self, transport, discovery):
        """Test the transport's message is surfaced."""
        transport.enumerate_error = TransportUnavailableError("Adapter is off")

        with pytest.raises(DiscoveryError) as exc_info:
            await discovery.discover()

        assert exc_info.value.message == "Adapter is off"
        assert isinstance(exc_info.value.__cause__, TransportUnavailableError)
        assert discovery.last_error == "Adapter is off"

    @pytest.mark.asyncio
    async def test_permission_hint_appended_on_mac(self, transport, mac_discovery):
        """Test the hint is appended to transport errors on macOS."""
        transport.enumerate_error = RuntimeError("Adapter is off")

        with pytest.raises(DiscoveryError) as exc_info:
            await mac_discovery.discover()

        assert exc_info.value.message == "Adapter is off" + PERMISSION_HINT

    @pytest.mark.asyncio
    async def test_permission_hint_not_duplicated(self, transport, mac_discovery):
        """Test errors already mentioning the permission get no hint."""
        message = "Bluetooth permission denied"
        transport.enumerate_error = RuntimeError(message)

        with pytest.raises(DiscoveryError) as exc_info:
            await mac_discovery.discover()

        assert exc_info.value.message == message

    @pytest.mark.asyncio
    async def test_empty_error_message_uses_class_name(self, transport, discovery):
        """Test errors without text are named by their type."""
        transport.enumerate_error = RuntimeError()

        with pytest.raises(DiscoveryError) as exc_info:
            await discovery.discover()

        assert exc_info.value.message == "RuntimeError"

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, transport, discovery):
        """Test cancelling discovery cancels the enumeration too."""
        transport.enumerate_never_returns = True

        task = asyncio.create_task(discovery.discover())
        await asyncio.sleep(0.01)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert discovery.status == DiscoveryStatus.IDLE
