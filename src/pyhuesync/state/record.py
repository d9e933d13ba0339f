"""Per-light record owned by a hub."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from pyhuesync.models.light import LightInfo, LightState, LightSummary
from pyhuesync.state.policy import is_suppressed


@dataclass(slots=True)
class DeviceRecord:
    """Known state of one light plus its self-write suppression deadlines.

    ``id`` is the light's hardware ``uniqueid`` and never changes.
    ``upstream_id`` and ``name`` follow the bridge and may.
    """

    id: str
    upstream_id: str
    name: str
    state: LightState
    info: dict[str, Any] = field(default_factory=dict)
    suppressed: dict[str, float] = field(default_factory=dict)
    """Canonical field name -> deadline (clock seconds)."""

    @classmethod
    def from_info(cls, info: LightInfo) -> DeviceRecord:
        return cls(
            id=info.uniqueid,
            upstream_id=info.id,
            name=info.name,
            state=info.state,
            info=dict(info.raw),
        )

    @property
    def suppress_until(self) -> float:
        """Latest suppression deadline, ``0.0`` when nothing is masked."""
        return max(self.suppressed.values(), default=0.0)

    def suppress(self, fields: Iterable[str], deadline: float) -> None:
        for name in fields:
            self.suppressed[name] = max(deadline, self.suppressed.get(name, 0.0))

    def masked_fields(self, now: float) -> frozenset[str]:
        """Fields still masked at *now*; expired entries are dropped."""
        expired = [name for name, deadline in self.suppressed.items() if not is_suppressed(now, deadline)]
        for name in expired:
            del self.suppressed[name]
        return frozenset(self.suppressed)

    def summary(self) -> LightSummary:
        return LightSummary(id=self.id, info=self.upstream_id, name=self.name)
