"""Self-echo suppression policy.

A local write is reflected by the bridge only after some delay, and a poll
that was already in flight may still report the old value. Fields a write
touched are therefore masked until a deadline; poll results for those
fields are ignored until then. Fields the write did not touch are compared
as usual, so an external change to them is still reported.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from pyhuesync.models.light import STATE_FIELDS


def suppression_deadline(now: float, margin: float, duration_ms: int | None = None) -> float:
    """Deadline until which written fields are masked.

    With a transition the window covers the full transition plus one second
    of slack, rounded down to whole seconds.
    """
    deadline = now + margin
    if duration_ms is not None and duration_ms > 0:
        deadline += math.floor(1 + duration_ms / 1000)
    return deadline


def is_suppressed(now: float, deadline: float) -> bool:
    return now < deadline


def touched_fields(body: Mapping[str, Any]) -> frozenset[str]:
    """Canonical fields a request body writes.

    Any colour write also claims ``colormode``: the bridge switches mode as a
    side effect.
    """
    fields = {key for key in body if key in STATE_FIELDS}
    if fields & {"hue", "sat", "ct", "xy"}:
        fields.add("colormode")
    return frozenset(fields)
