"""
Monitor exceptions - errors raised by the battery monitoring engine.
"""
from typing import Any, Dict, Optional


class MonitorException(Exception):
    """
    Base exception for all monitor errors.

    Carries a user-presentable message plus a machine-readable code
    so the presentation layer can render failures consistently.
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for the presentation layer."""
        return {
            'error': self.code,
            'message': self.message,
            'details': self.details
        }


class TransportUnavailableError(MonitorException):
    """Raised by transports when enumeration or a telemetry fetch fails."""

    def __init__(
        self,
        message: str = "Transport unavailable",
        device_id: Optional[str] = None
    ):
        self.device_id = device_id
        super().__init__(
            message=message,
            code='TRANSPORT_UNAVAILABLE',
            details={'device_id': device_id} if device_id else {}
        )


class DiscoveryError(MonitorException):
    """Raised when device discovery fails; the message is user-facing."""

    def __init__(self, message: str, code: str = 'DISCOVERY_FAILED'):
        super().__init__(message=message, code=code)


class DiscoveryTimeoutError(DiscoveryError):
    """Raised when device discovery exceeds its time budget."""

    def __init__(self, message: str, timeout_ms: Optional[int] = None):
        super().__init__(message=message, code='DISCOVERY_TIMEOUT')
        self.timeout_ms = timeout_ms
        if timeout_ms is not None:
            self.details['timeout_ms'] = timeout_ms


class DeviceNotFoundError(MonitorException):
    """Raised when a device id is not known to the registry or discovery."""

    def __init__(self, device_id: str, message: Optional[str] = None):
        self.device_id = device_id
        super().__init__(
            message=message or f"Device with id '{device_id}' not found",
            code='DEVICE_NOT_FOUND',
            details={'device_id': device_id}
        )
