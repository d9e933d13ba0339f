"""Consumer subscription table."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from pyhuesync.models.light import ConsumerStatus, LightValue


class Consumer(Protocol):
    """Something interested in one light.

    ``receives`` is ``False`` for write-only consumers: they get status
    updates but no values.
    """

    receives: bool

    def update_status(self, status: ConsumerStatus) -> None: ...

    def send(self, value: LightValue) -> None: ...


@dataclass
class CallbackConsumer:
    """:class:`Consumer` built from plain callables."""

    on_value: Callable[[LightValue], None] | None = None
    on_status: Callable[[ConsumerStatus], None] | None = None
    receives: bool = True

    def update_status(self, status: ConsumerStatus) -> None:
        if self.on_status is not None:
            self.on_status(status)

    def send(self, value: LightValue) -> None:
        if self.on_value is not None:
            self.on_value(value)


class SubscriptionRegistry:
    """``device_id -> {consumer_id -> consumer}``.

    Entries may exist for lights the hub has not seen yet.
    """

    def __init__(self) -> None:
        self._by_device: dict[str, dict[str, Consumer]] = {}

    def add(self, device_id: str, consumer_id: str, consumer: Consumer) -> None:
        """Register *consumer*; replaces an earlier one with the same id."""
        self._by_device.setdefault(device_id, {})[consumer_id] = consumer

    def remove(self, device_id: str, consumer_id: str) -> bool:
        """Drop a subscription. Returns ``False`` when there was none."""
        consumers = self._by_device.get(device_id)
        if consumers is None or consumer_id not in consumers:
            return False
        del consumers[consumer_id]
        if not consumers:
            del self._by_device[device_id]
        return True

    def consumers(self, device_id: str) -> dict[str, Consumer]:
        """Snapshot of the consumers for *device_id*; safe to iterate while mutating."""
        return dict(self._by_device.get(device_id, {}))

    def __len__(self) -> int:
        return sum(len(consumers) for consumers in self._by_device.values())
