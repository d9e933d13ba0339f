"""Fan-out of light state to subscribed consumers."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping

from pyhuesync.exceptions import DeliveryFailure
from pyhuesync.models.light import ConsumerStatus, LightCodec
from pyhuesync.state.record import DeviceRecord
from pyhuesync.state.subscriptions import Consumer, SubscriptionRegistry

_logger = logging.getLogger(__name__)


class ChangeDispatcher:
    """Pushes a record's current state to everyone subscribed to it.

    Delivery reads the record at call time, so a consumer always sees the
    state the record holds when ``dispatch`` runs. A consumer that raises is
    reported and skipped; the others are still served.
    """

    def __init__(
        self,
        records: Mapping[str, DeviceRecord],
        subscriptions: SubscriptionRegistry,
        codec: LightCodec,
        warn: Callable[[str], None],
    ) -> None:
        self._records = records
        self._subscriptions = subscriptions
        self._codec = codec
        self._warn = warn

    def dispatch(self, device_id: str, *, skip_send: str | None = None) -> list[DeliveryFailure]:
        """Deliver status and value for *device_id* to all its consumers.

        The consumer registered as *skip_send* gets the status only; this is
        how a writer avoids receiving its own change back.
        """
        failures: list[DeliveryFailure] = []
        for consumer_id, consumer in self._subscriptions.consumers(device_id).items():
            failure = self.deliver(device_id, consumer_id, consumer, send_value=consumer_id != skip_send)
            if failure is not None:
                failures.append(failure)
        return failures

    def deliver(
        self,
        device_id: str,
        consumer_id: str,
        consumer: Consumer,
        *,
        send_value: bool = True,
    ) -> DeliveryFailure | None:
        """Deliver to a single consumer; ``unknown`` status if the light is not known."""
        record = self._records.get(device_id)
        try:
            if record is None:
                consumer.update_status(ConsumerStatus.unknown())
                return None
            consumer.update_status(self._codec.status(record.state))
            if send_value and consumer.receives:
                consumer.send(self._codec.render(record.state))
        except Exception as exc:  # noqa: BLE001
            failure = DeliveryFailure(
                f"Delivery of {device_id} to {consumer_id} failed: {exc}",
                device_id=device_id,
                consumer_id=consumer_id,
            )
            _logger.debug("Consumer %s raised for light %s", consumer_id, device_id, exc_info=True)
            self._warn(str(failure))
            return failure
        return None
