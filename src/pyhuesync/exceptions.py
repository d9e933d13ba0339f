"""Custom exception hierarchy for pyhuesync."""

from __future__ import annotations


class HueSyncError(Exception):
    """Base exception for all pyhuesync errors."""


class ConfigurationError(HueSyncError):
    """Invalid or missing configuration.

    Raised by :meth:`pyhuesync.hub.SyncHub.start`; the hub stays inert.
    """


class UpstreamUnavailable(HueSyncError):
    """The bridge could not be reached or did not answer usefully.

    Transient: the poll loop keeps running and the caller may retry
    :meth:`~pyhuesync.hub.SyncHub.start`.
    """

    def __init__(self, message: str, *, endpoint: str = "") -> None:
        self.endpoint = endpoint
        super().__init__(message)


class HueTransportError(UpstreamUnavailable):
    """HTTP-level failure (network, non-200, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        super().__init__(message, endpoint=endpoint)


class HueApiError(HueSyncError):
    """The bridge answered with an error object.

    The Hue API reports errors in-band as
    ``[{"error": {"type": 7, "address": "...", "description": "..."}}]``.
    """

    def __init__(
        self,
        message: str,
        *,
        error_type: int | None = None,
        address: str = "",
        endpoint: str = "",
    ) -> None:
        self.error_type = error_type
        self.address = address
        self.endpoint = endpoint
        super().__init__(message)


class HueAuthenticationError(HueApiError):
    """The bridge rejected the configured username (error type ``1``)."""


class DeviceNotFound(HueSyncError):
    """Operation against a light id the hub has never seen."""

    def __init__(self, device_id: str) -> None:
        self.device_id = device_id
        super().__init__(f"Unknown light {device_id!r}")


class DeliveryFailure(HueSyncError):
    """A consumer raised while receiving a status or value.

    Isolated per consumer: logged and reported, never propagated out of a
    fan-out.
    """

    def __init__(self, message: str, *, device_id: str, consumer_id: str) -> None:
        self.device_id = device_id
        self.consumer_id = consumer_id
        super().__init__(message)
