"""Connectivity monitoring for the offline-first client."""

from offline_first.platform.connectivity.monitor import ConnectivityMonitor
from offline_first.platform.connectivity.sources import (
    ConnectivitySource,
    HttpProbeConnectivitySource,
    ManualConnectivitySource,
)

__all__ = [
    "ConnectivityMonitor",
    "ConnectivitySource",
    "HttpProbeConnectivitySource",
    "ManualConnectivitySource",
]
