"""
Unit tests for the device data model.

Tests telemetry normalization and store record conversion.
"""
import pytest

from battery_monitor.devices.models import (
    BatteryReading,
    Device,
    RegisteredDevice,
    normalize_snapshot,
)

from factories import RegisteredDeviceFactory


class TestNormalizeSnapshot:
    """Test transport output normalization."""

    def test_none_is_empty(self):
        assert normalize_snapshot(None) == ()

    def test_single_reading(self):
        """Test a bare reading becomes a one-element snapshot."""
        reading = BatteryReading(battery_level=50)

        assert normalize_snapshot(reading) == (reading,)

    def test_single_dict(self):
        assert normalize_snapshot({"battery_level": 40}) == (BatteryReading(40),)

    def test_sequence_keeps_order(self):
        """Test multiple readings keep transport order."""
        raw = [
            {"battery_level": 10, "user_descriptor": "Left"},
            BatteryReading(20, "Right"),
        ]

        assert normalize_snapshot(raw) == (
            BatteryReading(10, "Left"),
            BatteryReading(20, "Right"),
        )

    @pytest.mark.parametrize("level", [-1, 101, "high", True])
    def test_unusable_levels_become_unknown(self, level):
        """Test out of range and non-numeric levels are treated as unknown."""
        assert normalize_snapshot({"battery_level": level}) == (BatteryReading(None),)

    @pytest.mark.parametrize("level", [42.7, 20.5, 0.5])
    def test_fractional_level_kept(self, level):
        """Test fractional levels are kept as reported."""
        assert normalize_snapshot({"battery_level": level}) == (BatteryReading(level),)

    def test_unsupported_item(self):
        """Test unsupported items raise TypeError."""
        with pytest.raises(TypeError):
            normalize_snapshot([42])


class TestRegisteredDevice:
    """Test the registered device aggregate."""

    def test_with_telemetry_reconnects(self):
        """Test new telemetry replaces the snapshot and clears the flag."""
        device = RegisteredDeviceFactory(is_disconnected=True)
        snapshot = (BatteryReading(5),)

        updated = device.with_telemetry(snapshot)

        assert updated.battery_infos == snapshot
        assert updated.is_disconnected is False
        assert device.is_disconnected is True

    def test_as_disconnected_keeps_snapshot(self):
        device = RegisteredDeviceFactory()

        updated = device.as_disconnected()

        assert updated.is_disconnected is True
        assert updated.battery_infos == device.battery_infos

    def test_to_dict(self):
        """Test conversion to a store record."""
        device = RegisteredDevice(
            device=Device(id="A", name="Mouse"),
            battery_infos=(BatteryReading(70, "Case"),),
        )

        assert device.to_dict() == {
            "id": "A",
            "name": "Mouse",
            "battery_infos": [{"battery_level": 70, "user_descriptor": "Case"}],
            "is_disconnected": False,
        }

    def test_from_dict_round_trip(self):
        device = RegisteredDeviceFactory(is_disconnected=True)

        assert RegisteredDevice.from_dict(device.to_dict()) == device

    def test_from_dict_camel_case(self):
        """Test records written by the desktop application load."""
        record = {
            "id": "A",
            "name": "Mouse",
            "batteryInfos": [{"battery_level": 10, "user_descriptor": None}],
            "isDisconnected": True,
        }

        device = RegisteredDevice.from_dict(record)

        assert device.id == "A"
        assert device.battery_infos == (BatteryReading(10),)
        assert device.is_disconnected is True

    def test_from_dict_defaults(self):
        device = RegisteredDevice.from_dict({"id": "A", "name": "Mouse"})

        assert device.battery_infos == ()
        assert device.is_disconnected is False

    def test_from_dict_missing_id(self):
        with pytest.raises(KeyError):
            RegisteredDevice.from_dict({"name": "Mouse"})

    @pytest.mark.parametrize("flag", ["false", 1, None])
    def test_from_dict_non_boolean_flag(self, flag):
        """Test a disconnected flag that is not a boolean is rejected."""
        with pytest.raises(ValueError):
            RegisteredDevice.from_dict({"id": "A", "name": "Mouse", "isDisconnected": flag})

    def test_repr(self):
        device = RegisteredDeviceFactory(device=Device(id="A", name="Mouse"))

        assert repr(device) == "RegisteredDevice(id=A, levels=[80], disconnected=False)"
