"""
Transition detection between consecutive telemetry snapshots.

Decides which notification-worthy edges fired during a refresh and
renders the user-facing message for each.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Set

from .models import BatteryLevel, BatteryReading

LOW_BATTERY_THRESHOLD = 20

# Label used for the primary component of a multi-reading device
DEFAULT_COMPONENT_LABEL = "Central"


class EdgeKind(str, Enum):
    """Kind of transition worth telling the user about."""
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    LOW_BATTERY_ONSET = "low_battery_onset"


@dataclass(frozen=True)
class NotificationEdge:
    """A detected transition; index is set for low battery onsets only."""
    kind: EdgeKind
    index: Optional[int] = None


def is_low_battery(level: Optional[BatteryLevel], threshold: int = LOW_BATTERY_THRESHOLD) -> bool:
    """
    Check whether a battery level counts as low.

    Unknown (None) and exactly 0 are never low.
    """
    if level is None or level == 0:
        return False
    return 0 < level <= threshold


def _is_baseline(level: Optional[BatteryLevel]) -> bool:
    # Unknown or zero readings cannot establish a "was not low" state
    return level is not None and level != 0


def detect_low_battery_edges(
    previous: Sequence[BatteryReading],
    current: Sequence[BatteryReading],
    threshold: int = LOW_BATTERY_THRESHOLD,
) -> Set[int]:
    """
    Find readings that crossed into low battery.

    Readings are compared position by position up to the shorter
    snapshot, so a component appearing or disappearing between
    fetches is ignored rather than treated as an error.

    Args:
        previous: Snapshot stored before the refresh began.
        current: Snapshot just fetched.
        threshold: Low battery threshold in percent.

    Returns:
        Indices whose reading went from not low to low.
    """
    edges = set()
    for index, (before, after) in enumerate(zip(previous, current)):
        if not _is_baseline(before.battery_level):
            continue
        was_low = is_low_battery(before.battery_level, threshold)
        now_low = is_low_battery(after.battery_level, threshold)
        if not was_low and now_low:
            edges.add(index)
    return edges


def describe_reading_label(snapshot: Sequence[BatteryReading], index: int) -> str:
    """
    Label suffix for a reading in a notification message.

    Single-reading devices need no label; multi-reading devices use
    the component descriptor, falling back to the default label.
    """
    if len(snapshot) < 2:
        return ""
    return " " + (snapshot[index].user_descriptor or DEFAULT_COMPONENT_LABEL)


def format_edge_message(
    device_name: str,
    edge: NotificationEdge,
    snapshot: Sequence[BatteryReading] = (),
) -> str:
    """Render the notification text for an edge."""
    if edge.kind == EdgeKind.CONNECTED:
        return f"{device_name} has been connected."
    if edge.kind == EdgeKind.DISCONNECTED:
        return f"{device_name} has been disconnected."
    label = describe_reading_label(snapshot, edge.index or 0)
    return f"{device_name}{label} has low battery."
