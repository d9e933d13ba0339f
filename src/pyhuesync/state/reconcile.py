"""Merging bridge poll results into the light registry."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping, MutableMapping
from dataclasses import dataclass
from typing import Any

from pyhuesync.models.light import LightCodec
from pyhuesync.state.record import DeviceRecord

_logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ReconcileResult:
    device_id: str
    changed: bool
    added: bool = False


class PollReconciler:
    """Turns a bridge snapshot into record updates.

    * Unseen lights get a new record and count as changed, so consumers that
      subscribed early catch up.
    * Known lights take the polled state, except for fields still masked by
      a local write; the record only changes when the codec sees a
      difference.
    * Lights missing from a snapshot are left alone.

    This class never dispatches; the caller dispatches the changed ids in
    the same pass.
    """

    def __init__(
        self,
        records: MutableMapping[str, DeviceRecord],
        codec: LightCodec,
        *,
        clock: Callable[[], float],
        warn: Callable[[str], None],
    ) -> None:
        self._records = records
        self._codec = codec
        self._clock = clock
        self._warn = warn

    async def fetch(self, fetch_all: Callable[[], Awaitable[list[dict[str, Any]]]]) -> list[dict[str, Any]] | None:
        """Fetch a snapshot; ``None`` (pass skipped) on any failure."""
        try:
            return await fetch_all()
        except Exception as exc:  # noqa: BLE001
            _logger.debug("Light poll failed", exc_info=True)
            self._warn(f"Light poll failed: {exc}")
            return None

    def reconcile(self, snapshot: Iterable[Mapping[str, Any]]) -> list[ReconcileResult]:
        now = self._clock()
        results: list[ReconcileResult] = []
        for payload in snapshot:
            try:
                info = self._codec.parse(payload)
            except ValueError as exc:
                self._warn(f"Ignoring unparseable light payload {payload.get('id', '?')!r}: {exc}")
                continue

            record = self._records.get(info.uniqueid)
            if record is None:
                record = DeviceRecord.from_info(info)
                self._records[record.id] = record
                _logger.debug("New light %s (%s) %r", record.id, record.upstream_id, record.name)
                results.append(ReconcileResult(record.id, changed=True, added=True))
                continue

            record.upstream_id = info.id
            record.name = info.name
            record.info = dict(info.raw)

            incoming = info.state
            masked = record.masked_fields(now)
            if masked:
                incoming = incoming.model_copy(update={name: getattr(record.state, name) for name in masked})

            changed = self._codec.diff(record.state, incoming)
            if changed:
                record.state = incoming
            results.append(ReconcileResult(record.id, changed=changed))
        return results
