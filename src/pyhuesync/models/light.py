"""Light models and the codec between bridge payloads and consumers.

Three representations meet here:

* :class:`LightState` is the canonical state the hub stores and diffs. Its
  field names and scales are the bridge's own (``bri`` 0-254, ``hue``
  0-65535, ``ct`` in mired), so locally written request bodies can be
  applied to it directly.
* :class:`LightValue` is what consumers receive: percentages, degrees,
  kelvin, RGB and hex.
* :class:`LightChange` is what consumers ask for; :class:`HueLightCodec`
  turns it into a bridge request body.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Literal, Protocol

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from pyhuesync._constants import MIRED_MAX, MIRED_MIN, TRANSITION_UNIT_MS
from pyhuesync.models._base import HueBaseModel, clamp, safe_float, safe_int
from pyhuesync.models.color import (
    RGB,
    bri_to_percent,
    degrees_to_hue,
    hex_to_rgb,
    hsv_to_rgb,
    hue_to_degrees,
    kelvin_to_mired,
    kelvin_to_rgb,
    mired_to_kelvin,
    percent_to_bri,
    percent_to_sat,
    rgb_to_hex,
    rgb_to_hsv,
    sat_to_percent,
    xy_to_rgb,
)

ColorMode = Literal["hs", "ct", "xy"]

#: Request body keys that map one-to-one onto :class:`LightState` fields.
STATE_FIELDS: frozenset[str] = frozenset({"on", "bri", "hue", "sat", "ct", "xy"})

_COLOR_FIELDS: dict[str, tuple[str, ...]] = {
    "hs": ("hue", "sat"),
    "ct": ("ct",),
    "xy": ("xy",),
}


class LightState(BaseModel):
    """Canonical state of one light, in bridge units."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    on: bool = False
    reachable: bool = False
    bri: int = 0
    hue: int | None = None
    sat: int | None = None
    ct: int | None = None
    xy: tuple[float, float] | None = None
    colormode: ColorMode | None = None

    @field_validator("bri", mode="before")
    @classmethod
    def _coerce_bri(cls, value: Any) -> int:
        return safe_int(value) or 0

    @field_validator("hue", "sat", "ct", mode="before")
    @classmethod
    def _coerce_ints(cls, value: Any) -> int | None:
        return safe_int(value)

    @field_validator("xy", mode="before")
    @classmethod
    def _coerce_xy(cls, value: Any) -> tuple[float, float] | None:
        if not isinstance(value, (list, tuple)) or len(value) != 2:
            return None
        x, y = safe_float(value[0]), safe_float(value[1])
        if x is None or y is None:
            return None
        return x, y

    @field_validator("colormode", mode="before")
    @classmethod
    def _coerce_colormode(cls, value: Any) -> str | None:
        return value if value in _COLOR_FIELDS else None

    def color_fields(self) -> tuple[str, ...]:
        """Fields that carry the colour for the current ``colormode``."""
        if self.colormode is None:
            return ("hue", "sat", "ct", "xy")
        return _COLOR_FIELDS[self.colormode]


class LightInfo(HueBaseModel):
    """A light as listed by ``GET /api/<username>/lights``."""

    id: str
    """Bridge-local light number; used to address writes."""
    uniqueid: str
    """Hardware identifier; the hub's identity key."""
    name: str = ""
    type: str = ""
    modelid: str = ""
    manufacturername: str = ""
    state: LightState = Field(default_factory=LightState)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        return str(value)

    @field_validator("uniqueid")
    @classmethod
    def _require_uniqueid(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("uniqueid must be non-empty")
        return stripped


class LightValue(BaseModel):
    """Consumer-facing projection of a :class:`LightState`."""

    model_config = ConfigDict(frozen=True)

    on: bool
    reachable: bool
    bri: int
    """Brightness in percent (0-100)."""
    hue: int | None = None
    """Hue in degrees (0-360)."""
    sat: int | None = None
    """Saturation in percent (0-100)."""
    color_temp: int | None = None
    """Colour temperature in kelvin."""
    mired: int | None = None
    colormode: ColorMode | None = None
    rgb: RGB = (0, 0, 0)
    hex: str = "#000000"


class LightSummary(BaseModel):
    """One row of :meth:`pyhuesync.hub.SyncHub.list_lights`."""

    model_config = ConfigDict(frozen=True)

    id: str
    info: str
    """Bridge-local light number."""
    name: str


class ConsumerStatus(BaseModel):
    """Short status badge shown next to a consumer."""

    model_config = ConfigDict(frozen=True)

    fill: Literal["red", "green", "yellow", "blue", "grey"]
    shape: Literal["ring", "dot"]
    text: str

    @property
    def connected(self) -> bool:
        return self.fill != "red"

    @classmethod
    def unknown(cls) -> ConsumerStatus:
        return cls(fill="red", shape="ring", text="unknown")

    @classmethod
    def disconnected(cls) -> ConsumerStatus:
        return cls(fill="red", shape="ring", text="disconnected")

    @classmethod
    def lit(cls, percent: int) -> ConsumerStatus:
        return cls(fill="green", shape="dot", text=f"on ({percent}%)")

    @classmethod
    def off(cls) -> ConsumerStatus:
        return cls(fill="grey", shape="dot", text="off")


class LightChange(BaseModel):
    """A change requested by a consumer.

    Colour can be given as ``hue``/``sat``, as ``rgb``/``hex`` or as a
    colour temperature (``color_temp`` in kelvin or ``mired``); the three
    forms are mutually exclusive. ``duration`` is the transition time in
    milliseconds.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
        validate_default=True,
    )

    on: bool | None = None
    bri: float | None = Field(default=None, ge=0, le=100, validation_alias=AliasChoices("bri", "brightness"))
    hue: float | None = Field(default=None, ge=0, le=360)
    sat: float | None = Field(default=None, ge=0, le=100, validation_alias=AliasChoices("sat", "saturation"))
    color_temp: float | None = Field(
        default=None,
        gt=0,
        validation_alias=AliasChoices("color_temp", "colorTemp", "kelvin"),
    )
    mired: int | None = Field(default=None, gt=0)
    rgb: RGB | None = None
    hex: str | None = None
    duration: int | None = Field(default=None, ge=0)

    @field_validator("rgb")
    @classmethod
    def _check_rgb(cls, value: RGB | None) -> RGB | None:
        if value is not None and any(not 0 <= channel <= 255 for channel in value):
            raise ValueError("rgb channels must be within 0..255")
        return value

    @field_validator("hex")
    @classmethod
    def _check_hex(cls, value: str | None) -> str | None:
        if value is not None:
            hex_to_rgb(value)
        return value

    @model_validator(mode="after")
    def _exclusive_color_inputs(self) -> LightChange:
        given = [
            self.hue is not None or self.sat is not None,
            self.rgb is not None or self.hex is not None,
            self.color_temp is not None or self.mired is not None,
        ]
        if sum(given) > 1:
            raise ValueError("hue/sat, rgb/hex and color_temp/mired are mutually exclusive")
        if self.rgb is not None and self.hex is not None:
            raise ValueError("rgb and hex are mutually exclusive")
        if self.color_temp is not None and self.mired is not None:
            raise ValueError("color_temp and mired are mutually exclusive")
        return self

    def target_rgb(self) -> RGB | None:
        if self.rgb is not None:
            return self.rgb
        if self.hex is not None:
            return hex_to_rgb(self.hex)
        return None


class LightCodec(Protocol):
    """Per-light value handling the hub depends on.

    Having a protocol here lets tests and other bridges supply their own
    representation while :class:`HueLightCodec` stays the default.
    """

    def parse(self, payload: Mapping[str, Any]) -> LightInfo: ...

    def diff(self, old: LightState, new: LightState) -> bool: ...

    def render(self, state: LightState) -> LightValue: ...

    def status(self, state: LightState) -> ConsumerStatus: ...

    def build_write_request(self, change: LightChange) -> dict[str, Any]: ...

    def apply(self, state: LightState, body: Mapping[str, Any]) -> LightState: ...


class HueLightCodec:
    """Default codec for Hue bridge lights."""

    def parse(self, payload: Mapping[str, Any]) -> LightInfo:
        """Parse one light payload. Raises ``pydantic.ValidationError``."""
        return LightInfo.model_validate(dict(payload))

    def diff(self, old: LightState, new: LightState) -> bool:
        """Whether *new* differs from *old* in anything a consumer can see."""
        if (old.on, old.reachable, old.bri, old.colormode) != (new.on, new.reachable, new.bri, new.colormode):
            return True
        return any(getattr(old, name) != getattr(new, name) for name in new.color_fields())

    def render(self, state: LightState) -> LightValue:
        percent = bri_to_percent(state.bri)
        hue = hue_to_degrees(state.hue) if state.hue is not None else None
        sat = sat_to_percent(state.sat) if state.sat is not None else None
        kelvin = mired_to_kelvin(state.ct) if state.ct else None

        rgb: RGB = (0, 0, 0)
        if state.colormode == "ct" and kelvin is not None:
            rgb = _scale(kelvin_to_rgb(kelvin), percent)
        elif state.colormode == "xy" and state.xy is not None:
            rgb = xy_to_rgb(state.xy[0], state.xy[1], percent)
        elif hue is not None and sat is not None:
            rgb = hsv_to_rgb(hue, sat, percent)
        elif percent:
            rgb = _scale((255, 255, 255), percent)

        return LightValue(
            on=state.on,
            reachable=state.reachable,
            bri=percent,
            hue=hue,
            sat=sat,
            color_temp=kelvin,
            mired=state.ct,
            colormode=state.colormode,
            rgb=rgb,
            hex=rgb_to_hex(rgb),
        )

    def status(self, state: LightState) -> ConsumerStatus:
        if not state.reachable:
            return ConsumerStatus.disconnected()
        if state.on:
            return ConsumerStatus.lit(bri_to_percent(state.bri))
        return ConsumerStatus.off()

    def build_write_request(self, change: LightChange) -> dict[str, Any]:
        """Render a ``PUT /lights/<id>/state`` body for *change*.

        Brightness ``0`` switches the light off; any other brightness
        switches it on unless ``on`` says otherwise. Switching off sends only
        ``on`` and the transition: the bridge rejects every other state
        parameter for a light that is off (error 201).
        """
        brightness = change.bri
        hue, sat = change.hue, change.sat
        rgb = change.target_rgb()
        if rgb is not None:
            hue, sat, value = rgb_to_hsv(rgb)
            if brightness is None:
                brightness = value

        body: dict[str, Any] = {}
        if change.on is False or (brightness is not None and brightness <= 0 and change.on is not True):
            body["on"] = False
        else:
            if change.on is not None:
                body["on"] = change.on
            if brightness is not None:
                body["bri"] = percent_to_bri(brightness)
                body.setdefault("on", True)
            if hue is not None:
                body["hue"] = degrees_to_hue(hue)
            if sat is not None:
                body["sat"] = percent_to_sat(sat)
            if change.color_temp is not None:
                body["ct"] = kelvin_to_mired(change.color_temp)
            elif change.mired is not None:
                body["ct"] = int(clamp(change.mired, MIRED_MIN, MIRED_MAX))

        if change.duration is not None:
            body["transitiontime"] = int(round(change.duration / TRANSITION_UNIT_MS))
        return body

    def apply(self, state: LightState, body: Mapping[str, Any]) -> LightState:
        """Optimistically apply a request body to *state*."""
        update: dict[str, Any] = {key: body[key] for key in STATE_FIELDS if key in body}
        if "hue" in update or "sat" in update:
            update["colormode"] = "hs"
        elif "ct" in update:
            update["colormode"] = "ct"
        elif "xy" in update:
            update["colormode"] = "xy"
        if not update:
            return state
        return state.model_copy(update=update)


def _scale(rgb: RGB, percent: int) -> RGB:
    factor = max(0, min(100, percent)) / 100
    return int(round(rgb[0] * factor)), int(round(rgb[1] * factor)), int(round(rgb[2] * factor))
