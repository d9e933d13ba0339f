from __future__ import annotations

import asyncio

import pytest

from pyhuesync.config import HueConfig
from pyhuesync.exceptions import ConfigurationError, DeviceNotFound, UpstreamUnavailable
from pyhuesync.hub import SyncHub
from pyhuesync.models.light import ConsumerStatus, LightSummary, LightValue
from pyhuesync.state.reconcile import ReconcileResult
from pyhuesync.state.subscriptions import CallbackConsumer

KITCHEN = "00:17:88:01:02:aa:bb:cc-0b"
HALLWAY = "00:17:88:01:02:dd:ee:ff-0b"


def _config(**overrides: object) -> HueConfig:
    values: dict[str, object] = {"address": "bridge.local", "username": "whitelisted-user", "interval": 1.0}
    values.update(overrides)
    return HueConfig(**values)  # type: ignore[arg-type]


def _recorder() -> tuple[CallbackConsumer, list[LightValue], list[ConsumerStatus]]:
    values: list[LightValue] = []
    statuses: list[ConsumerStatus] = []
    return CallbackConsumer(on_value=values.append, on_status=statuses.append), values, statuses


@pytest.mark.asyncio
async def test_start_seeds_registry_and_arms_poll(bridge) -> None:
    hub = SyncHub(client=bridge)
    await hub.start(_config())
    try:
        assert hub.running
        assert bridge.fetches == 1
        assert hub.list_lights() == [LightSummary(id=KITCHEN, info="1", name="Kitchen")]
    finally:
        await hub.stop()


@pytest.mark.asyncio
async def test_start_failure_reports_unavailable_and_stays_inert(bridge) -> None:
    bridge.fail_fetch = True
    hub = SyncHub(client=bridge)

    with pytest.raises(UpstreamUnavailable):
        await hub.start(_config())

    assert not hub.running
    assert hub.list_lights() == []

    # Caller-initiated retry succeeds once the bridge is back.
    bridge.fail_fetch = False
    await hub.start(_config())
    assert hub.running
    await hub.stop()


@pytest.mark.asyncio
@pytest.mark.parametrize("interval", [0, -1, 0.1, float("nan"), True, "2"])
async def test_start_rejects_unsafe_interval(bridge, interval: object) -> None:
    hub = SyncHub(client=bridge)

    with pytest.raises(ConfigurationError):
        await hub.start(_config(interval=interval))

    assert bridge.fetches == 0
    assert not hub.running


@pytest.mark.asyncio
async def test_stop_is_idempotent(bridge) -> None:
    hub = SyncHub(client=bridge)
    await hub.start(_config())

    await hub.stop()
    await hub.stop()

    assert not hub.running
    assert hub.list_lights() == []


@pytest.mark.asyncio
async def test_poll_loop_runs_until_stopped(bridge) -> None:
    hub = SyncHub(client=bridge)
    await hub.start(_config(interval=0.5))

    await asyncio.sleep(0.7)
    assert bridge.fetches >= 2

    await hub.stop()
    fetches = bridge.fetches
    await asyncio.sleep(0.6)
    assert bridge.fetches == fetches


@pytest.mark.asyncio
async def test_subscribe_delivers_known_state_immediately(bridge) -> None:
    hub = SyncHub(client=bridge)
    await hub.poll_once()
    consumer, values, statuses = _recorder()

    hub.subscribe(KITCHEN, "display", consumer)

    assert [v.bri for v in values] == [50]
    assert statuses == [ConsumerStatus.lit(50)]


@pytest.mark.asyncio
async def test_subscriber_before_light_exists_gets_unknown_then_state_once(bridge) -> None:
    bridge.lights.clear()
    hub = SyncHub(client=bridge)
    await hub.poll_once()
    consumer, values, statuses = _recorder()

    hub.subscribe(KITCHEN, "display", consumer)
    assert values == []
    assert statuses == [ConsumerStatus.unknown()]

    bridge.lights["1"] = {
        "name": "Kitchen",
        "uniqueid": KITCHEN,
        "state": {"on": True, "reachable": True, "bri": 254, "hue": 0, "sat": 254, "colormode": "hs"},
    }
    results = await hub.poll_once()

    assert results == [ReconcileResult(KITCHEN, changed=True, added=True)]
    assert len(values) == 1
    assert values[0].hex == "#ff0000"
    assert statuses[-1] == ConsumerStatus.lit(100)


@pytest.mark.asyncio
async def test_write_only_consumer_receives_status_but_no_values(bridge) -> None:
    hub = SyncHub(client=bridge)
    await hub.poll_once()
    values: list[LightValue] = []
    statuses: list[ConsumerStatus] = []
    switch = CallbackConsumer(on_value=values.append, on_status=statuses.append, receives=False)

    hub.subscribe(KITCHEN, "switch", switch)

    assert values == []
    assert statuses == [ConsumerStatus.lit(50)]


@pytest.mark.asyncio
async def test_write_is_not_echoed_and_later_external_change_is_detected(bridge, clock) -> None:
    hub = SyncHub(client=bridge, clock=clock)
    await hub.poll_once()
    reader, read_values, _ = _recorder()
    writer, writer_values, writer_statuses = _recorder()
    hub.subscribe(KITCHEN, "reader", reader)
    hub.subscribe(KITCHEN, "writer", writer)
    read_values.clear()
    writer_values.clear()

    await hub.write(KITCHEN, {"brightness": 80, "duration": 2000}, origin="writer")

    assert bridge.writes == [("1", {"on": True, "bri": 203, "transitiontime": 20})]
    assert [v.bri for v in read_values] == [80]
    assert writer_values == []
    assert writer_statuses[-1] == ConsumerStatus.lit(80)

    # 500 ms later the bridge reports the target value: nothing to dispatch.
    clock.now += 0.5
    bridge.set_state("1", bri=203)
    assert await hub.poll_once() == [ReconcileResult(KITCHEN, changed=False)]

    # A stale poll still carrying the pre-write value is masked as well.
    bridge.set_state("1", bri=127)
    assert await hub.poll_once() == [ReconcileResult(KITCHEN, changed=False)]
    assert [v.bri for v in read_values] == [80]
    assert writer_values == []

    # After the transition the bridge reports an external change to 50%.
    clock.now += 5.0
    assert await hub.poll_once() == [ReconcileResult(KITCHEN, changed=True)]
    assert [v.bri for v in read_values] == [80, 50]
    assert [v.bri for v in writer_values] == [50]


@pytest.mark.asyncio
async def test_external_change_to_unwritten_field_passes_during_suppression(bridge, clock) -> None:
    hub = SyncHub(client=bridge, clock=clock)
    await hub.poll_once()
    reader, values, _ = _recorder()
    hub.subscribe(KITCHEN, "reader", reader)
    values.clear()

    await hub.write(KITCHEN, {"bri": 80})
    values.clear()

    clock.now += 0.2
    bridge.set_state("1", bri=127, on=False)
    results = await hub.poll_once()

    assert results == [ReconcileResult(KITCHEN, changed=False)]

    bridge.set_state("1", hue=30000)
    results = await hub.poll_once()

    assert results == [ReconcileResult(KITCHEN, changed=True)]
    assert values[-1].hue == 165
    # Written fields keep the local value until the deadline.
    assert values[-1].bri == 80
    assert values[-1].on is True


@pytest.mark.asyncio
async def test_write_unknown_light_raises_without_side_effects(bridge) -> None:
    hub = SyncHub(client=bridge)
    await hub.poll_once()

    with pytest.raises(DeviceNotFound):
        hub.write(HALLWAY, {"bri": 10})

    assert bridge.writes == []


@pytest.mark.asyncio
async def test_write_rejects_empty_change(bridge) -> None:
    hub = SyncHub(client=bridge)
    await hub.poll_once()

    with pytest.raises(ValueError):
        hub.write(KITCHEN, {})

    assert hub.get_light(KITCHEN).bri == 50


@pytest.mark.asyncio
async def test_failed_upstream_write_is_reported_without_rollback(bridge) -> None:
    warnings: list[str] = []
    bridge.fail_write = True
    hub = SyncHub(client=bridge, on_warning=warnings.append)
    await hub.poll_once()

    await hub.write(KITCHEN, {"bri": 80})

    assert any("Write to light" in message for message in warnings)
    assert hub.get_light(KITCHEN).bri == 80


@pytest.mark.asyncio
async def test_unsubscribed_consumer_gets_nothing(bridge) -> None:
    hub = SyncHub(client=bridge)
    await hub.poll_once()
    consumer, values, _ = _recorder()
    hub.subscribe(KITCHEN, "display", consumer)
    values.clear()

    hub.unsubscribe(KITCHEN, "display")
    hub.unsubscribe(KITCHEN, "display")
    bridge.set_state("1", bri=254)
    results = await hub.poll_once()

    assert results == [ReconcileResult(KITCHEN, changed=True)]
    assert values == []


@pytest.mark.asyncio
async def test_failed_poll_is_reported_and_keeps_state(bridge) -> None:
    warnings: list[str] = []
    hub = SyncHub(client=bridge, on_warning=warnings.append)
    await hub.poll_once()

    bridge.fail_fetch = True
    assert await hub.poll_once() == []

    assert warnings and "Light poll failed" in warnings[0]
    assert hub.get_light(KITCHEN).bri == 50


@pytest.mark.asyncio
async def test_missing_light_is_kept(bridge) -> None:
    hub = SyncHub(client=bridge)
    await hub.poll_once()

    bridge.lights.clear()
    assert await hub.poll_once() == []

    assert [summary.id for summary in hub.list_lights()] == [KITCHEN]


@pytest.mark.asyncio
async def test_stop_discards_in_flight_poll(bridge) -> None:
    hub = SyncHub(client=bridge)
    bridge.gate = asyncio.Event()
    poll = asyncio.create_task(hub.poll_once())
    await asyncio.sleep(0)

    await hub.stop()
    bridge.gate.set()

    assert await poll == []
    assert hub.list_lights() == []


@pytest.mark.asyncio
async def test_list_lights_returns_copies(bridge) -> None:
    hub = SyncHub(client=bridge)
    await hub.poll_once()

    listing = hub.list_lights()
    listing.clear()

    assert len(hub.list_lights()) == 1


@pytest.mark.asyncio
async def test_get_light_unknown_raises(bridge) -> None:
    hub = SyncHub(client=bridge)

    with pytest.raises(DeviceNotFound):
        hub.get_light(KITCHEN)


@pytest.mark.asyncio
async def test_hubs_do_not_share_state(bridge, light_payload) -> None:
    other_bridge = type(bridge)(lights={"7": light_payload(uniqueid=HALLWAY, name="Hallway")})
    first = SyncHub(client=bridge)
    second = SyncHub(client=other_bridge)

    await first.poll_once()
    await second.poll_once()

    assert [s.id for s in first.list_lights()] == [KITCHEN]
    assert [s.id for s in second.list_lights()] == [HALLWAY]


class _RefusingClient:
    async def fetch_all(self) -> list[dict[str, object]]:
        raise ConnectionRefusedError("bridge refused")

    async def write_state(self, upstream_id: str, body: object) -> None:
        raise AssertionError("not reached")


@pytest.mark.asyncio
async def test_start_wraps_unexpected_fetch_errors() -> None:
    hub = SyncHub(client=_RefusingClient())

    with pytest.raises(UpstreamUnavailable) as exc_info:
        await hub.start(_config())

    assert isinstance(exc_info.value.__cause__, ConnectionRefusedError)
    assert not hub.running
    assert hub.list_lights() == []


@pytest.mark.asyncio
async def test_start_on_running_hub_is_a_noop(bridge) -> None:
    hub = SyncHub(client=bridge)
    await hub.start(_config())

    await hub.start(_config(interval=5.0))

    assert bridge.fetches == 1
    assert hub.config is not None and hub.config.interval == 1.0
    await hub.stop()


@pytest.mark.asyncio
async def test_overlapping_starts_arm_a_single_poll_loop(bridge) -> None:
    hub = SyncHub(client=bridge)
    bridge.gate = asyncio.Event()
    starts = asyncio.gather(hub.start(_config(interval=0.5)), hub.start(_config(interval=0.5)))
    await asyncio.sleep(0)
    bridge.gate.set()
    await starts

    assert bridge.fetches == 1

    await hub.stop()
    fetches = bridge.fetches
    await asyncio.sleep(1.2)
    assert bridge.fetches == fetches


@pytest.mark.asyncio
async def test_write_failing_after_stop_is_not_reported(bridge) -> None:
    warnings: list[str] = []
    bridge.fail_write = True
    bridge.write_gate = asyncio.Event()
    hub = SyncHub(client=bridge, on_warning=warnings.append)
    await hub.poll_once()

    write = hub.write(KITCHEN, {"bri": 80})
    stopping = asyncio.create_task(hub.stop())
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    bridge.write_gate.set()
    await stopping

    assert write.done() and not write.cancelled()
    assert bridge.writes == [("1", {"on": True, "bri": 203})]
    assert warnings == []


@pytest.mark.asyncio
async def test_stop_cancels_writes_outliving_the_grace_period(bridge, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("pyhuesync.hub.STOP_WRITE_GRACE", 0.05)
    warnings: list[str] = []
    bridge.write_gate = asyncio.Event()
    hub = SyncHub(client=bridge, on_warning=warnings.append)
    await hub.poll_once()

    write = hub.write(KITCHEN, {"bri": 80})
    await hub.stop()

    assert write.cancelled()
    assert warnings == []
    assert hub.list_lights() == []


@pytest.mark.asyncio
async def test_switching_off_masks_only_the_switch(bridge, clock) -> None:
    hub = SyncHub(client=bridge, clock=clock)
    await hub.poll_once()

    await hub.write(KITCHEN, {"on": False, "bri": 50})

    assert bridge.writes == [("1", {"on": False})]
    clock.now += 0.2
    bridge.set_state("1", on=False, bri=254)
    assert await hub.poll_once() == [ReconcileResult(KITCHEN, changed=True)]
    assert hub.get_light(KITCHEN).bri == 100
    assert hub.get_light(KITCHEN).on is False
