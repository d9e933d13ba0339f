from __future__ import annotations

import asyncio
import copy
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

import pytest

from pyhuesync.exceptions import HueApiError, UpstreamUnavailable

KITCHEN = "00:17:88:01:02:aa:bb:cc-0b"


def make_light(uniqueid: str = KITCHEN, name: str = "Kitchen", **state: Any) -> dict[str, Any]:
    base: dict[str, Any] = {
        "on": True,
        "reachable": True,
        "bri": 127,
        "hue": 8000,
        "sat": 120,
        "ct": 366,
        "xy": [0.5, 0.4],
        "colormode": "hs",
        "alert": "none",
        "effect": "none",
    }
    base.update(state)
    return {
        "name": name,
        "type": "Extended color light",
        "modelid": "LCT015",
        "manufacturername": "Signify Netherlands B.V.",
        "uniqueid": uniqueid,
        "state": base,
    }


@dataclass
class FakeClock:
    now: float = 1000.0

    def __call__(self) -> float:
        return self.now


@dataclass
class FakeBridge:
    """In-memory stand-in for :class:`pyhuesync.client.HueBridgeClient`."""

    lights: dict[str, dict[str, Any]] = field(default_factory=dict)
    fail_fetch: bool = False
    fail_write: bool = False
    gate: asyncio.Event | None = None
    write_gate: asyncio.Event | None = None
    fetches: int = 0
    writes: list[tuple[str, dict[str, Any]]] = field(default_factory=list)

    async def fetch_all(self) -> list[dict[str, Any]]:
        self.fetches += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_fetch:
            raise UpstreamUnavailable("bridge offline", endpoint="/lights")
        return [{**copy.deepcopy(payload), "id": light_id} for light_id, payload in self.lights.items()]

    async def write_state(self, upstream_id: str, body: Mapping[str, Any]) -> None:
        self.writes.append((upstream_id, dict(body)))
        if self.write_gate is not None:
            await self.write_gate.wait()
        if self.fail_write:
            raise HueApiError("parameter, bri, is not modifiable", error_type=201)

    def set_state(self, light_id: str, **state: Any) -> None:
        self.lights[light_id]["state"].update(state)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def bridge() -> FakeBridge:
    return FakeBridge(lights={"1": make_light()})


@pytest.fixture
def light_payload() -> Callable[..., dict[str, Any]]:
    return make_light
