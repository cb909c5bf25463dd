"""HTTP transport for the offline-first client."""

from offline_first.platform.http_client.transport import HttpTransport, TransportResponse

__all__ = ["HttpTransport", "TransportResponse"]
