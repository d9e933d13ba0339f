#!/usr/bin/env python3
"""Watch the lights on a Hue bridge.

Starts a :class:`pyhuesync.SyncHub`, subscribes to every light it finds and
prints each update as it arrives. Optionally serves the ``GET /lights``
listing on a local port.

Usage
-----
Set environment variables and run::

    export HUE_ADDRESS="192.168.1.2"
    export HUE_USERNAME="your-whitelisted-username"
    python scripts/watch_lights.py

Options::

    --interval SECONDS   Poll interval (default: HUE_POLL_INTERVAL or 1.0)
    --set ID:JSON        Send one change after start, e.g. '<uniqueid>:{"bri": 40}'
    --serve PORT         Also serve GET /lights?server=<name> on PORT
    --json               Print updates as JSON lines
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from aiohttp import web  # noqa: E402

from pyhuesync import CallbackConsumer, ConsumerStatus, HueConfig, HueSyncError, LightValue, SyncHub  # noqa: E402
from pyhuesync.web import create_app  # noqa: E402


def _printer(device_id: str, name: str, json_mode: bool) -> CallbackConsumer:
    def on_value(value: LightValue) -> None:
        stamp = datetime.now().strftime("%H:%M:%S")
        if json_mode:
            print(json.dumps({"time": stamp, "id": device_id, "name": name, "value": value.model_dump()}))
        else:
            state = "on " if value.on else "off"
            print(f"{stamp}  {name:<24} {state} {value.bri:>3}%  {value.hex}  ({value.colormode or '-'})")

    def on_status(status: ConsumerStatus) -> None:
        if not json_mode and not status.connected:
            print(f"{datetime.now():%H:%M:%S}  {name:<24} {status.text}")

    return CallbackConsumer(on_value=on_value, on_status=on_status)


def _parse_change(raw: str) -> tuple[str, dict[str, Any]]:
    # uniqueids contain colons themselves, so split at the start of the JSON object.
    idx = raw.find(":{")
    if idx < 0:
        raise SystemExit(f"--set expects ID:JSON, got {raw!r}")
    return raw[:idx], json.loads(raw[idx + 1 :])


async def main() -> None:
    parser = argparse.ArgumentParser(description="Print Hue light updates as pyhuesync sees them.")
    parser.add_argument("--interval", type=float, help="Poll interval in seconds")
    parser.add_argument("--set", dest="changes", action="append", default=[], help="Change to send, as ID:JSON")
    parser.add_argument("--serve", type=int, metavar="PORT", help="Serve GET /lights on PORT")
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Print JSON lines")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    overrides: dict[str, Any] = {}
    if args.interval is not None:
        overrides["interval"] = args.interval
    config = HueConfig.from_env(**overrides)
    server_id = config.name or config.address

    runner: web.AppRunner | None = None
    async with SyncHub(on_warning=lambda msg: print(f"warning: {msg}", file=sys.stderr)) as hub:
        try:
            await hub.start(config)
        except HueSyncError as exc:
            print(f"Could not start: {exc}", file=sys.stderr)
            raise SystemExit(1) from exc

        for summary in hub.list_lights():
            hub.subscribe(summary.id, "watch_lights", _printer(summary.id, summary.name, args.json_mode))

        for raw in args.changes:
            device_id, change = _parse_change(raw)
            await hub.write(device_id, change, origin="watch_lights")

        if args.serve:
            runner = web.AppRunner(create_app({server_id: hub}))
            await runner.setup()
            await web.TCPSite(runner, "127.0.0.1", args.serve).start()
            print(f"Serving http://127.0.0.1:{args.serve}/lights?server={server_id}", file=sys.stderr)

        try:
            await asyncio.Event().wait()
        finally:
            if runner is not None:
                await runner.cleanup()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
