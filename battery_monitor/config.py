"""
Configuration for the battery monitor.

Provides settings for polling, retry handling, notifications and
device discovery, plus the per-cycle snapshot handed to refreshes.
"""
from dataclasses import dataclass
from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class PollingSettings(BaseSettings):
    """Telemetry polling configuration."""

    model_config = SettingsConfigDict(
        env_prefix="MONITOR_POLLING_",
        env_file=".env",
        extra="ignore",
    )

    interval_ms: int = Field(default=60000, gt=0, description="Refresh cycle interval (ms)")
    max_attempts: int = Field(default=3, ge=1, description="Fetch attempts for a connected device")
    disconnected_attempts: int = Field(
        default=1, ge=1, description="Fetch attempts for a device already marked disconnected"
    )
    retry_delay_ms: int = Field(default=500, ge=0, description="Delay between failed attempts (ms)")


class NotificationSettings(BaseSettings):
    """User notification configuration."""

    model_config = SettingsConfigDict(
        env_prefix="MONITOR_NOTIFICATIONS_",
        env_file=".env",
        extra="ignore",
    )

    enabled: bool = Field(default=True, description="Master switch for all notifications")
    on_connected: bool = Field(default=True, description="Notify when a device reconnects")
    on_disconnected: bool = Field(default=True, description="Notify when a device disconnects")
    on_low_battery: bool = Field(default=True, description="Notify on low battery onset")
    low_battery_threshold: int = Field(
        default=20, ge=1, le=100, description="Level (%) at or below which a reading is low"
    )


class DiscoverySettings(BaseSettings):
    """Device discovery configuration."""

    model_config = SettingsConfigDict(
        env_prefix="MONITOR_DISCOVERY_",
        env_file=".env",
        extra="ignore",
    )

    timeout_ms: int = Field(default=20000, gt=0, description="Enumeration time budget (ms)")
    permission_platforms: List[str] = Field(
        default_factory=lambda: ["Darwin"],
        description="Platforms that gate Bluetooth access behind a runtime permission",
    )


class MonitorSettings(BaseSettings):
    """Main configuration for the battery monitor."""

    model_config = SettingsConfigDict(
        env_prefix="MONITOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="Battery Monitor")
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    # Sub-settings
    polling: PollingSettings = Field(default_factory=PollingSettings)
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
    discovery: DiscoverySettings = Field(default_factory=DiscoverySettings)


@dataclass(frozen=True)
class RefreshConfig:
    """
    Configuration captured at the start of a refresh cycle.

    Every refresh in a cycle sees the same values, even if settings
    change while the cycle is running.
    """
    max_attempts: int = 3
    disconnected_attempts: int = 1
    retry_delay_ms: int = 500
    notifications_enabled: bool = True
    notify_on_connected: bool = True
    notify_on_disconnected: bool = True
    notify_on_low_battery: bool = True
    low_battery_threshold: int = 20

    @classmethod
    def from_settings(cls, settings: MonitorSettings) -> "RefreshConfig":
        polling = settings.polling
        notifications = settings.notifications
        return cls(
            max_attempts=polling.max_attempts,
            disconnected_attempts=polling.disconnected_attempts,
            retry_delay_ms=polling.retry_delay_ms,
            notifications_enabled=notifications.enabled,
            notify_on_connected=notifications.on_connected,
            notify_on_disconnected=notifications.on_disconnected,
            notify_on_low_battery=notifications.on_low_battery,
            low_battery_threshold=notifications.low_battery_threshold,
        )

    def attempts_for(self, is_disconnected: bool) -> int:
        """Retry budget for a device given its current connectivity."""
        return self.disconnected_attempts if is_disconnected else self.max_attempts

    @property
    def should_notify_connected(self) -> bool:
        return self.notifications_enabled and self.notify_on_connected

    @property
    def should_notify_disconnected(self) -> bool:
        return self.notifications_enabled and self.notify_on_disconnected

    @property
    def should_notify_low_battery(self) -> bool:
        return self.notifications_enabled and self.notify_on_low_battery


@lru_cache()
def get_monitor_settings() -> MonitorSettings:
    """
    Get cached monitor settings.

    Uses LRU cache to avoid re-reading environment variables on every access.
    """
    return MonitorSettings()
