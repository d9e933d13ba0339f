"""Async client for the Hue bridge light endpoints."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from pyhuesync._constants import HUE_ERROR_UNAUTHORIZED
from pyhuesync._transport import BridgeTransport, Transport
from pyhuesync.config import HueConfig
from pyhuesync.exceptions import HueApiError, HueAuthenticationError, HueSyncError, HueTransportError

_logger = logging.getLogger(__name__)


class UpstreamClient(Protocol):
    """What :class:`~pyhuesync.hub.SyncHub` needs from the bridge."""

    async def fetch_all(self) -> list[dict[str, Any]]: ...

    async def write_state(self, upstream_id: str, body: Mapping[str, Any]) -> None: ...


def _raise_for_errors(decoded: Any, endpoint: str) -> None:
    """Raise for the first ``{"error": {...}}`` item in a bridge response."""
    items = decoded if isinstance(decoded, list) else [decoded]
    for item in items:
        if not isinstance(item, dict) or not isinstance(item.get("error"), dict):
            continue
        error = item["error"]
        error_type = error.get("type")
        description = str(error.get("description", ""))
        address = str(error.get("address", ""))
        exc_cls = HueAuthenticationError if error_type == HUE_ERROR_UNAUTHORIZED else HueApiError
        raise exc_cls(
            f"{endpoint} failed: type={error_type} {description}".rstrip(),
            error_type=error_type if isinstance(error_type, int) else None,
            address=address,
            endpoint=endpoint,
        )


class HueBridgeClient:
    """Async client for one Hue bridge.

    Usage::

        async with HueBridgeClient(config) as client:
            lights = await client.fetch_all()
    """

    def __init__(
        self,
        config: HueConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._transport: Transport | None = transport

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> HueBridgeClient:
        await self.open()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def open(self) -> None:
        if self._transport is not None:
            return
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        self._transport = BridgeTransport(self._config, self._http_session)

    async def close(self) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
        self._http_session = None
        self._transport = None

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise HueSyncError("Client not initialized. Use 'async with HueBridgeClient(...) as client:'")
        return self._transport

    # ------------------------------------------------------------------
    # Lights
    # ------------------------------------------------------------------

    async def fetch_all(self) -> list[dict[str, Any]]:
        """Fetch every light with its full state.

        The bridge keys lights by their bridge-local number; that number is
        copied into each payload as ``id``.
        """
        endpoint = "/lights"
        decoded = await self._require_transport().request("GET", endpoint)
        _raise_for_errors(decoded, endpoint)
        if not isinstance(decoded, dict):
            raise HueTransportError(f"Unexpected light list from {endpoint}: {type(decoded).__name__}", endpoint=endpoint)

        lights: list[dict[str, Any]] = []
        for light_id, payload in decoded.items():
            if isinstance(payload, dict):
                lights.append({**payload, "id": str(light_id)})
        return lights

    async def write_state(self, upstream_id: str, body: Mapping[str, Any]) -> None:
        """Send a state change to one light."""
        endpoint = f"/lights/{upstream_id}/state"
        decoded = await self._require_transport().request("PUT", endpoint, dict(body))
        _raise_for_errors(decoded, endpoint)
        _logger.debug("Light %s accepted %s", upstream_id, body)
