"""HTTP transport for the Hue bridge REST API."""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

import aiohttp

from pyhuesync._constants import USER_AGENT
from pyhuesync._redact import redact_url, truncate_for_log
from pyhuesync.config import HueConfig
from pyhuesync.exceptions import HueTransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by :class:`~pyhuesync.client.HueBridgeClient`.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (:class:`BridgeTransport`) concrete.
    """

    async def request(self, method: str, endpoint: str, body: Any = None) -> Any: ...


class BridgeTransport:
    """Sends JSON requests to ``<base_url>/api/<username><endpoint>``."""

    def __init__(self, config: HueConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=config.request_timeout)

    def _url(self, endpoint: str) -> str:
        return f"{self._config.base_url}/api/{self._config.username}{endpoint}"

    async def request(self, method: str, endpoint: str, body: Any = None) -> Any:
        """Send a request and return the decoded JSON body.

        Raises :class:`HueTransportError` on network failures, timeouts,
        non-200 responses and bodies that are not JSON. Bridge-level error
        objects are returned as-is; interpreting them is the client's job.
        """
        url = self._url(endpoint)
        headers = {"content-type": "application/json", "user-agent": USER_AGENT}
        data = json.dumps(body, separators=(",", ":")) if body is not None else None

        _logger.debug("%s %s %s", method, redact_url(url, self._config.username), data or "")

        try:
            async with self._http.request(method, url, data=data, headers=headers, timeout=self._timeout) as resp:
                text = await resp.text()
                if resp.status != 200:
                    raise HueTransportError(
                        f"HTTP {resp.status} from {endpoint}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=endpoint,
                    )
        except HueTransportError:
            raise
        except TimeoutError as exc:
            raise HueTransportError(f"Request to {endpoint} timed out", endpoint=endpoint) from exc
        except aiohttp.ClientError as exc:
            raise HueTransportError(f"Request to {endpoint} failed: {exc}", endpoint=endpoint) from exc

        try:
            decoded = json.loads(text)
        except json.JSONDecodeError as exc:
            raise HueTransportError(
                f"Invalid JSON from {endpoint}: {text[:200]}",
                endpoint=endpoint,
            ) from exc

        _logger.debug("Response from %s: %s", endpoint, truncate_for_log(decoded))
        return decoded
