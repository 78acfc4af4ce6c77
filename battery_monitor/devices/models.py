"""
Device data model.

Devices, battery readings and the registered-device aggregate tracked
by the registry, with conversion to and from JSON-like store records.
"""
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, Optional, Tuple, Union

logger = logging.getLogger(__name__)

# Percentage; fractional values are kept as reported
BatteryLevel = Union[int, float]


@dataclass(frozen=True)
class Device:
    """A discoverable peripheral with a stable identifier and display name."""
    id: str
    name: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name}


@dataclass(frozen=True)
class BatteryReading:
    """
    A single battery level measurement.

    battery_level is a number in 0-100, or None when the device does
    not report it.
    user_descriptor labels the sub-component the reading belongs to
    (e.g. left/right earbud, case) when a device reports several.
    """
    battery_level: Optional[BatteryLevel] = None
    user_descriptor: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BatteryReading":
        return cls(
            battery_level=_normalize_level(data.get("battery_level")),
            user_descriptor=data.get("user_descriptor"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "battery_level": self.battery_level,
            "user_descriptor": self.user_descriptor,
        }


# Readings from one fetch, in transport order
TelemetrySnapshot = Tuple[BatteryReading, ...]

RawTelemetry = Union[
    BatteryReading,
    Dict[str, Any],
    Iterable[Union[BatteryReading, Dict[str, Any]]],
    None,
]


def _normalize_level(value: Any) -> Optional[BatteryLevel]:
    """Return a raw level if it is a number in 0-100, else None."""
    if value is None or isinstance(value, bool):
        return None
    if not isinstance(value, (int, float)):
        logger.debug(f"Ignoring non-numeric battery level {value!r}")
        return None
    if not 0 <= value <= 100:
        logger.debug(f"Battery level {value} out of range, treating as unknown")
        return None
    return value


def _normalize_reading(item: Union[BatteryReading, Dict[str, Any]]) -> BatteryReading:
    if isinstance(item, BatteryReading):
        level = _normalize_level(item.battery_level)
        if level != item.battery_level:
            return replace(item, battery_level=level)
        return item
    if isinstance(item, dict):
        return BatteryReading.from_dict(item)
    raise TypeError(f"Unsupported telemetry reading: {item!r}")


def normalize_snapshot(raw: RawTelemetry) -> TelemetrySnapshot:
    """
    Normalize transport output into a telemetry snapshot.

    Transports may return a single reading or a sequence of readings,
    either as BatteryReading objects or JSON-like dicts.

    Args:
        raw: Raw telemetry returned by the transport.

    Returns:
        Tuple of readings in transport order.
    """
    if raw is None:
        return ()
    if isinstance(raw, (BatteryReading, dict)):
        return (_normalize_reading(raw),)
    return tuple(_normalize_reading(item) for item in raw)


@dataclass(frozen=True)
class RegisteredDevice:
    """
    A device the user has opted to monitor.

    Aggregates the device identity, its latest telemetry snapshot and
    its connectivity flag. Instances are never mutated; refreshes
    return a new aggregate which the registry commits.
    """
    device: Device
    battery_infos: TelemetrySnapshot = field(default_factory=tuple)
    is_disconnected: bool = False

    @property
    def id(self) -> str:
        return self.device.id

    @property
    def name(self) -> str:
        return self.device.name

    def with_telemetry(self, snapshot: TelemetrySnapshot) -> "RegisteredDevice":
        """Return a connected copy carrying the given snapshot."""
        return replace(self, battery_infos=snapshot, is_disconnected=False)

    def as_disconnected(self) -> "RegisteredDevice":
        """Return a copy marked disconnected, keeping the last snapshot."""
        return replace(self, is_disconnected=True)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RegisteredDevice":
        """
        Build from a store record.

        Accepts both snake_case keys and the camelCase keys written by
        the desktop application (batteryInfos, isDisconnected).

        Raises:
            KeyError: If id or name is missing.
            ValueError: If the disconnected flag is not a boolean.
        """
        infos = data.get("battery_infos", data.get("batteryInfos")) or []
        is_disconnected = data.get("is_disconnected", data.get("isDisconnected", False))
        if not isinstance(is_disconnected, bool):
            raise ValueError(f"Invalid disconnected flag {is_disconnected!r}")
        return cls(
            device=Device(id=str(data["id"]), name=str(data["name"])),
            battery_infos=normalize_snapshot(infos),
            is_disconnected=is_disconnected,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-like record for the registry store."""
        return {
            "id": self.id,
            "name": self.name,
            "battery_infos": [info.to_dict() for info in self.battery_infos],
            "is_disconnected": self.is_disconnected,
        }

    def __repr__(self) -> str:
        levels = [info.battery_level for info in self.battery_infos]
        return (
            f"RegisteredDevice("
            f"id={self.id}, "
            f"levels={levels}, "
            f"disconnected={self.is_disconnected})"
        )
