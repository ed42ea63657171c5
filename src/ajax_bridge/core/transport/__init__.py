from ajax_bridge.core.transport.httpx_transport import FetchResponse, HttpxTransport

__all__ = ["FetchResponse", "HttpxTransport"]
