"""
Transport simulators for battery monitor testing.

Provides in-process transports with scripted telemetry for exercising
refresh, discovery and scheduling without real peripherals.
"""
from .scripted_transport import ScriptedTransport

__all__ = [
    "ScriptedTransport",
]
