"""Read-only HTTP listing of the lights each hub knows about.

``GET /lights?server=<id>`` answers with a JSON array of
``{"id", "info", "name"}`` objects, or ``500`` with a plain-text reason
when ``server`` is missing or not registered.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from aiohttp import web

from pyhuesync.hub import SyncHub

_logger = logging.getLogger(__name__)

HUBS_KEY: web.AppKey[dict[str, SyncHub]] = web.AppKey("pyhuesync_hubs", dict)


async def list_lights(request: web.Request) -> web.Response:
    server_id = request.query.get("server")
    if not server_id:
        return web.Response(status=500, text="Missing arguments")

    hub = request.app[HUBS_KEY].get(server_id)
    if hub is None:
        _logger.debug("Light listing requested for unknown server %r", server_id)
        return web.Response(status=500, text="Server not found or not activated")

    return web.json_response([summary.model_dump() for summary in hub.list_lights()])


def create_app(hubs: Mapping[str, SyncHub] | None = None) -> web.Application:
    """Build an application serving ``GET /lights`` for *hubs*."""
    app = web.Application()
    app[HUBS_KEY] = dict(hubs or {})
    app.router.add_get("/lights", list_lights)
    return app


def register_hub(app: web.Application, server_id: str, hub: SyncHub) -> None:
    app[HUBS_KEY][server_id] = hub


def unregister_hub(app: web.Application, server_id: str) -> None:
    app[HUBS_KEY].pop(server_id, None)
