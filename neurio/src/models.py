"""
Pydantic models for Neurio channel readings.

A SensorSample bundles the three ChannelReadings the sensor reports per poll
(line 1, line 2, total).  Field bounds mirror the numeric types of the
destination variables, so a reading that validates can always be written.

Validation is all-or-nothing: one out-of-range field (a negative total
``p_W`` while a site exports power, say) rejects the whole sample and none of
the eleven variables are written that cycle.  The range checks in
``VarType.encode`` therefore never fire from the poll loop; they guard direct
``VariableStore.set`` callers.

CHANGELOG:
- 2026-10-17: Initial creation (STORY-004)

TODO:
- None
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

U16_MAX = 0xFFFF
S16_MIN = -0x8000
S16_MAX = 0x7FFF
U64_MAX = 0xFFFFFFFFFFFFFFFF


class ChannelReading(BaseModel):
    """One channel entry of the sensor's ``channels`` array.

    Attributes:
        voltage_v: RMS voltage in volts (``v_V``).  Optional because the
            total channel does not carry a meaningful voltage.
        power_w: Real power in watts (``p_W``), unsigned 16-bit.
        reactive_power_var: Reactive power in var (``q_VAR``), signed 16-bit.
        energy_imp_ws: Cumulative imported energy in watt-seconds
            (``eImp_Ws``), unsigned 64-bit.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    voltage_v: float | None = Field(default=None, alias="v_V", allow_inf_nan=False)
    power_w: int = Field(alias="p_W", ge=0, le=U16_MAX)
    reactive_power_var: int = Field(alias="q_VAR", ge=S16_MIN, le=S16_MAX)
    energy_imp_ws: int = Field(alias="eImp_Ws", ge=0, le=U64_MAX)

    @field_validator("*", mode="before")
    @classmethod
    def _reject_booleans(cls, v: object) -> object:
        """JSON ``true``/``false`` are not readings."""
        if isinstance(v, bool):
            raise ValueError("boolean is not a numeric reading")
        return v


class SensorSample(BaseModel):
    """The three channel readings taken from one sensor response.

    Attributes:
        sensor_id: ``sensorId`` reported by the sensor, if any.
        line1: Line 1 channel.
        line2: Line 2 channel.
        total: Total channel (its voltage is never published).
    """

    model_config = ConfigDict(frozen=True)

    sensor_id: str | None = None
    line1: ChannelReading
    line2: ChannelReading
    total: ChannelReading

    @model_validator(mode="after")
    def _lines_carry_voltage(self) -> "SensorSample":
        """Line channels must report a voltage; the total channel need not."""
        for name in ("line1", "line2"):
            if getattr(self, name).voltage_v is None:
                raise ValueError(f"{name}: v_V is required")
        return self
