"""Data models for bridge payloads and consumer-facing values."""

from pyhuesync.models.light import (
    ConsumerStatus,
    HueLightCodec,
    LightChange,
    LightCodec,
    LightInfo,
    LightState,
    LightSummary,
    LightValue,
)

__all__ = [
    "ConsumerStatus",
    "HueLightCodec",
    "LightChange",
    "LightCodec",
    "LightInfo",
    "LightState",
    "LightSummary",
    "LightValue",
]
