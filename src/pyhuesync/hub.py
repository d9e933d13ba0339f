"""Top-level coordinator keeping lights and their consumers in sync."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from pyhuesync._constants import DEFAULT_SUPPRESS_MARGIN, STOP_WRITE_GRACE
from pyhuesync.client import HueBridgeClient, UpstreamClient
from pyhuesync.config import HueConfig
from pyhuesync.exceptions import DeviceNotFound, HueSyncError, UpstreamUnavailable
from pyhuesync.models.light import HueLightCodec, LightChange, LightCodec, LightSummary, LightValue
from pyhuesync.state.dispatch import ChangeDispatcher
from pyhuesync.state.policy import suppression_deadline, touched_fields
from pyhuesync.state.reconcile import PollReconciler, ReconcileResult
from pyhuesync.state.record import DeviceRecord
from pyhuesync.state.subscriptions import Consumer, SubscriptionRegistry

_logger = logging.getLogger(__name__)


class SyncHub:
    """Keeps a local model of a bridge's lights and fans changes out to consumers.

    All state lives on the instance, and every mutation happens in plain
    synchronous code on the event loop. A reconciliation pass and the
    dispatches it triggers therefore never interleave with ``subscribe``,
    ``unsubscribe`` or ``write``. Only the bridge calls are awaited.

    Usage::

        hub = SyncHub(on_warning=print)
        await hub.start(HueConfig(address="192.168.1.2", username="..."))
        hub.subscribe(light_id, "kitchen-display", CallbackConsumer(on_value=show))
        hub.write(light_id, {"bri": 80, "duration": 2000}, origin="kitchen-switch")
        ...
        await hub.stop()

    Parameters
    ----------
    client
        Upstream client. When omitted, :meth:`start` builds a
        :class:`~pyhuesync.client.HueBridgeClient` from the config and
        closes it again on :meth:`stop`.
    codec
        Light value codec. Defaults to :class:`~pyhuesync.models.light.HueLightCodec`.
    clock
        Monotonic clock in seconds, used for suppression deadlines.
    on_warning
        Called with a message for every reported, non-fatal failure
        (failed polls and writes, consumers that raised).
    """

    def __init__(
        self,
        *,
        client: UpstreamClient | None = None,
        codec: LightCodec | None = None,
        clock: Callable[[], float] = time.monotonic,
        on_warning: Callable[[str], None] | None = None,
    ) -> None:
        self._client = client
        self._owned_client: HueBridgeClient | None = None
        self._codec: LightCodec = codec if codec is not None else HueLightCodec()
        self._clock = clock
        self._on_warning = on_warning
        self._config: HueConfig | None = None

        self._records: dict[str, DeviceRecord] = {}
        self._subscriptions = SubscriptionRegistry()
        self._reconciler = PollReconciler(self._records, self._codec, clock=clock, warn=self._warn)
        self._dispatcher = ChangeDispatcher(self._records, self._subscriptions, self._codec, self._warn)

        self._poll_task: asyncio.Task[None] | None = None
        self._write_tasks: set[asyncio.Task[None]] = set()
        # Bumped by stop(); I/O that started under an older generation is discarded.
        self._generation = 0
        # Serializes start() so overlapping calls cannot arm two poll tasks.
        self._start_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> SyncHub:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    @property
    def running(self) -> bool:
        """Whether the poll loop is armed."""
        return self._poll_task is not None and not self._poll_task.done()

    @property
    def config(self) -> HueConfig | None:
        return self._config

    def _warn(self, message: str) -> None:
        _logger.warning("%s", message)
        if self._on_warning is not None:
            try:
                self._on_warning(message)
            except Exception:
                _logger.debug("on_warning callback failed", exc_info=True)

    def _require_client(self) -> UpstreamClient:
        client = self._client if self._client is not None else self._owned_client
        if client is None:
            raise HueSyncError("Hub not started. Call 'await hub.start(config)' first.")
        return client

    # ------------------------------------------------------------------
    # Start / stop
    # ------------------------------------------------------------------

    async def start(self, config: HueConfig) -> None:
        """Validate *config*, load all lights once, then arm the poll loop.

        Raises :class:`~pyhuesync.exceptions.ConfigurationError` for an
        invalid config and :class:`~pyhuesync.exceptions.UpstreamUnavailable`
        when the initial fetch fails. In both cases nothing is armed and the
        hub can be started again later.
        """
        async with self._start_lock:
            if self.running:
                _logger.debug("Hub %s already running", self._label())
                return
            config.validate()
            self._config = config

            if self._client is None and self._owned_client is None:
                owned = HueBridgeClient(config)
                await owned.open()
                self._owned_client = owned
            client = self._require_client()

            generation = self._generation
            try:
                snapshot = await client.fetch_all()
            except Exception as exc:  # noqa: BLE001
                _logger.error("Initial light fetch from %s failed: %s", self._label(), exc)
                await self._close_owned_client()
                if isinstance(exc, UpstreamUnavailable):
                    raise
                raise UpstreamUnavailable(f"Initial light fetch failed: {exc}") from exc

            if generation != self._generation:
                _logger.debug("Hub %s stopped during start; discarding initial fetch", self._label())
                return

            self._apply_snapshot(snapshot)
            self._poll_task = asyncio.create_task(
                self._poll_loop(config.interval), name=f"pyhuesync-poll-{self._label()}"
            )
            _logger.info(
                "Hub %s started with %d lights, polling every %ss", self._label(), len(self._records), config.interval
            )

    async def stop(self) -> None:
        """Stop polling, settle in-flight writes and forget all lights.

        Safe to call repeatedly and while a poll or write is in flight; their
        results are discarded.
        """
        self._generation += 1

        task, self._poll_task = self._poll_task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        writes = [t for t in self._write_tasks if t is not asyncio.current_task()]
        if writes:
            _, pending = await asyncio.wait(writes, timeout=STOP_WRITE_GRACE)
            for pending_task in pending:
                pending_task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
        self._write_tasks.clear()

        if self._records:
            _logger.debug(
                "Hub %s releasing %d lights (%d subscriptions kept)",
                self._label(),
                len(self._records),
                len(self._subscriptions),
            )
        self._records.clear()
        await self._close_owned_client()

    async def _close_owned_client(self) -> None:
        owned, self._owned_client = self._owned_client, None
        if owned is not None:
            await owned.close()

    def _label(self) -> str:
        if self._config is None:
            return "<unconfigured>"
        return self._config.name or self._config.address

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------

    async def _poll_loop(self, interval: float) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time() + interval
        while True:
            await asyncio.sleep(max(0.0, next_tick - loop.time()))
            try:
                await self.poll_once()
            except Exception:
                _logger.exception("Light poll pass for %s crashed", self._label())
            next_tick += interval
            # A slow bridge must not cause a burst of catch-up polls.
            if next_tick < loop.time():
                next_tick = loop.time() + interval

    async def poll_once(self) -> list[ReconcileResult]:
        """Run one reconciliation pass.

        Fetch failures are reported and skip the pass. Returns what changed.
        """
        client = self._require_client()
        generation = self._generation
        snapshot = await self._reconciler.fetch(client.fetch_all)
        if snapshot is None:
            return []
        if generation != self._generation:
            _logger.debug("Discarding poll result that completed after stop")
            return []
        return self._apply_snapshot(snapshot)

    def _apply_snapshot(self, snapshot: Iterable[Mapping[str, Any]]) -> list[ReconcileResult]:
        results = self._reconciler.reconcile(snapshot)
        for result in results:
            if result.changed:
                self._dispatcher.dispatch(result.device_id)
        return results

    # ------------------------------------------------------------------
    # Consumers
    # ------------------------------------------------------------------

    def subscribe(self, device_id: str, consumer_id: str, consumer: Consumer) -> None:
        """Register *consumer* for *device_id* and serve it right away.

        A light that is not known yet yields the ``unknown`` status; the
        consumer is served as soon as a poll finds the light.
        """
        self._subscriptions.add(device_id, consumer_id, consumer)
        self._dispatcher.deliver(device_id, consumer_id, consumer)

    def unsubscribe(self, device_id: str, consumer_id: str) -> None:
        if not self._subscriptions.remove(device_id, consumer_id):
            _logger.debug("No subscription %s for light %s", consumer_id, device_id)

    def write(
        self,
        device_id: str,
        change: LightChange | Mapping[str, Any],
        *,
        origin: str | None = None,
    ) -> asyncio.Task[None]:
        """Change a light.

        The local record is updated and dispatched immediately; the consumer
        named by *origin* gets its status but not its own value back. The
        written fields are masked against polls until the suppression
        deadline. The bridge call runs in the returned task; its failure is
        reported on the warning channel and does not roll back local state.

        Raises :class:`~pyhuesync.exceptions.DeviceNotFound` for unknown
        lights and ``ValueError`` for an invalid or empty change, in both
        cases before anything is modified.
        """
        record = self._records.get(device_id)
        if record is None:
            raise DeviceNotFound(device_id)
        client = self._require_client()

        if not isinstance(change, LightChange):
            change = LightChange.model_validate(dict(change))
        body = self._codec.build_write_request(change)
        if not touched_fields(body):
            raise ValueError(f"Change for light {device_id} does not set anything")

        margin = self._config.suppress_margin if self._config is not None else DEFAULT_SUPPRESS_MARGIN
        deadline = suppression_deadline(self._clock(), margin, change.duration)
        record.suppress(touched_fields(body), deadline)

        new_state = self._codec.apply(record.state, body)
        changed = self._codec.diff(record.state, new_state)
        record.state = new_state
        if changed:
            self._dispatcher.dispatch(device_id, skip_send=origin)

        task = asyncio.create_task(self._send_write(self._generation, record.id, record.upstream_id, body, client))
        self._write_tasks.add(task)
        task.add_done_callback(self._write_tasks.discard)
        return task

    async def _send_write(
        self,
        generation: int,
        device_id: str,
        upstream_id: str,
        body: dict[str, Any],
        client: UpstreamClient,
    ) -> None:
        try:
            await client.write_state(upstream_id, body)
        except Exception as exc:  # noqa: BLE001
            if generation != self._generation:
                _logger.debug("Write to light %s failed after stop: %s", device_id, exc)
                return
            self._warn(f"Write to light {device_id} failed: {exc}")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_lights(self) -> list[LightSummary]:
        """Snapshot of every known light (id, bridge id, name)."""
        return [record.summary() for record in self._records.values()]

    def get_light(self, device_id: str) -> LightValue:
        """Current rendered value of one light."""
        record = self._records.get(device_id)
        if record is None:
            raise DeviceNotFound(device_id)
        return self._codec.render(record.state)
