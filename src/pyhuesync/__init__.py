"""pyhuesync - keep Hue bridge lights and their consumers in sync."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyhuesync")
except PackageNotFoundError:
    __version__ = "0+local"
from pyhuesync.client import HueBridgeClient, UpstreamClient
from pyhuesync.config import HueConfig
from pyhuesync.exceptions import (
    ConfigurationError,
    DeliveryFailure,
    DeviceNotFound,
    HueApiError,
    HueAuthenticationError,
    HueSyncError,
    HueTransportError,
    UpstreamUnavailable,
)
from pyhuesync.hub import SyncHub
from pyhuesync.models import (
    ConsumerStatus,
    HueLightCodec,
    LightChange,
    LightCodec,
    LightInfo,
    LightState,
    LightSummary,
    LightValue,
)
from pyhuesync.state.subscriptions import CallbackConsumer, Consumer

__all__ = [
    "__version__",
    "CallbackConsumer",
    "ConfigurationError",
    "Consumer",
    "ConsumerStatus",
    "DeliveryFailure",
    "DeviceNotFound",
    "HueApiError",
    "HueAuthenticationError",
    "HueBridgeClient",
    "HueConfig",
    "HueLightCodec",
    "HueSyncError",
    "HueTransportError",
    "LightChange",
    "LightCodec",
    "LightInfo",
    "LightState",
    "LightSummary",
    "LightValue",
    "SyncHub",
    "UpstreamClient",
    "UpstreamUnavailable",
]
