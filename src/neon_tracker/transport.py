"""Outbound tracking transport.

Direct pings are plain GET requests with query parameters. Sends are
fire-and-forget: the request runs as a task on the running loop, failures are
logged and never retried or raised to the tracker.
"""

import asyncio
import time
from typing import Any, Mapping, Protocol, runtime_checkable

import httpx

from .events import TrackerEvents
from .exceptions import TransportError
from .log_config import get_context_logger
from .settings import get_settings


# Global HTTP client instances (keyed by config tuple)
_tracking_http_clients: dict[tuple[Any, ...], httpx.AsyncClient] = {}


@runtime_checkable
class Transport(Protocol):
    """Protocol for sending key/value parameters as a GET request."""

    def send(self, url: str, params: Mapping[str, Any]) -> Any:
        ...


def _load_http_config() -> dict[str, Any]:
    """Load tracking HTTP client configuration from settings."""

    http_cfg = get_settings().http or {}

    return {
        "timeout": http_cfg.get("timeout", 5.0),
        "max_connections": http_cfg.get("max_connections", 50),
        "max_keepalive_connections": http_cfg.get("max_keepalive_connections", 20),
        "keepalive_expiry": http_cfg.get("keepalive_expiry", 5.0),
        # Pixels keep firing even if the endpoint has a bad cert
        "verify": http_cfg.get("verify_ssl", False),
    }


def get_tracking_http_client(
    *,
    ssl_verify: bool | str | None = None,
    timeout: float | None = None,
) -> httpx.AsyncClient:
    """Get shared HTTP client for tracking pings using configurable settings."""

    cfg = _load_http_config()
    if ssl_verify is not None:
        cfg["verify"] = ssl_verify
    if timeout is not None:
        cfg["timeout"] = timeout

    key = (
        cfg["verify"],
        cfg["timeout"],
        cfg["max_connections"],
        cfg["max_keepalive_connections"],
        cfg["keepalive_expiry"],
    )
    if key not in _tracking_http_clients:
        _tracking_http_clients[key] = httpx.AsyncClient(
            timeout=cfg["timeout"],
            limits=httpx.Limits(
                max_keepalive_connections=cfg["max_keepalive_connections"],
                max_connections=cfg["max_connections"],
                keepalive_expiry=cfg["keepalive_expiry"],
            ),
            verify=cfg["verify"],
        )
    return _tracking_http_clients[key]


async def close_tracking_http_clients() -> None:
    """Close every shared tracking client."""
    clients = list(_tracking_http_clients.values())
    _tracking_http_clients.clear()
    for client in clients:
        await client.aclose()


class HttpTransport:
    """Fire-and-forget GET transport backed by ``httpx.AsyncClient``."""

    def __init__(self, client: httpx.AsyncClient | None = None, timeout: float | None = None):
        """Initialize transport.

        Args:
            client: HTTP client (shared tracking client if None)
            timeout: Per-request timeout override in seconds
        """
        self.client = client
        self.timeout = timeout
        self._pending: set[asyncio.Task] = set()
        self.logger = get_context_logger("neon_transport")

    def send(self, url: str, params: Mapping[str, Any]) -> asyncio.Task | None:
        """Schedule a GET request and return without waiting for it.

        Returns:
            The request task, or None when no event loop is running
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.logger.warning(
                TrackerEvents.TRANSPORT_FAILED,
                url=url,
                error_type="no_running_loop",
            )
            return None

        task = loop.create_task(self._get(url, dict(params)))
        # Strong reference until done, the loop only keeps weak ones
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _get(self, url: str, params: dict[str, Any]) -> bool:
        """Perform the request; never raises for HTTP or network failures."""
        if self.client is None:
            self.client = get_tracking_http_client()

        start_time = time.time()
        try:
            kwargs: dict[str, Any] = {"params": params}
            if self.timeout is not None:
                kwargs["timeout"] = self.timeout
            response = await self.client.get(url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            error = TransportError(
                "Tracking request rejected",
                http_status=e.response.status_code,
                network_error=e,
                context={"url": url},
            )
            self.logger.info(TrackerEvents.TRANSPORT_FAILED, error=str(error))
            return False
        except httpx.HTTPError as e:
            error = TransportError(
                "Tracking request failed", network_error=e, context={"url": url}
            )
            self.logger.info(
                TrackerEvents.TRANSPORT_FAILED,
                error=str(error),
                error_type=type(e).__name__,
            )
            return False

        self.logger.debug(
            TrackerEvents.TRANSPORT_RESPONSE,
            url=url,
            status_code=response.status_code,
            response_time=round(time.time() - start_time, 3),
        )
        return True

    async def drain(self) -> None:
        """Wait for in-flight requests to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def aclose(self) -> None:
        """Wait for in-flight requests, then close an owned client."""
        await self.drain()
        if self.client is not None and self.client not in _tracking_http_clients.values():
            await self.client.aclose()


__all__ = [
    "Transport",
    "HttpTransport",
    "get_tracking_http_client",
    "close_tracking_http_clients",
]
