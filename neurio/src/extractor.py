"""
Reading extractor: converts a Neurio ``/current-sample`` body into a SensorSample.

The sensor reports a top-level ``channels`` array.  Entries are addressed
positionally through a ChannelMap (default: 0 = line 1, 1 = line 2,
2 = total).  The sensor also labels each entry, but the labels are not
used to locate channels.

Each channel contributes four fields:

========  ==================  ==========
JSON key  Reading             Type
========  ==================  ==========
p_W       real power (W)      int (U16)
q_VAR     reactive power      int (S16)
v_V       voltage (V)         float
eImp_Ws   imported energy     int (U64)
========  ==================  ==========

This is a pure function: no I/O and no side effects.  Any structural problem
raises MalformedPayload so the caller can drop the cycle without touching the
variable store.

CHANGELOG:
- 2026-10-17: Make the channel index mapping configurable with bounds checks
- 2026-10-17: Initial creation (STORY-004)

TODO:
- None
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from neurio.src.errors import MalformedPayload
from neurio.src.models import SensorSample

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChannelMap:
    """Indices into the ``channels`` array for each logical channel."""

    line1: int = 0
    line2: int = 1
    total: int = 2

    @classmethod
    def from_tuple(cls, indices: tuple[int, int, int]) -> ChannelMap:
        line1, line2, total = indices
        return cls(line1=line1, line2=line2, total=total)

    def items(self) -> tuple[tuple[str, int], ...]:
        return (("line1", self.line1), ("line2", self.line2), ("total", self.total))

    @property
    def required_length(self) -> int:
        """Minimum ``channels`` length this mapping can index."""
        return max(self.line1, self.line2, self.total) + 1


DEFAULT_CHANNEL_MAP = ChannelMap()


def _format_errors(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc']) or 'sample'}: {err['msg']}"
        for err in exc.errors()
    )


def _channel_entry(channels: list[Any], name: str, index: int) -> dict[str, Any]:
    entry = channels[index]
    if not isinstance(entry, dict):
        raise MalformedPayload(
            f"channels[{index}] ({name}) is {type(entry).__name__}, expected object"
        )
    return entry


def extract(
    text: str,
    *,
    channel_map: ChannelMap = DEFAULT_CHANNEL_MAP,
) -> SensorSample:
    """Parse a sensor response and return its three channel readings.

    Args:
        text: Raw response body as accumulated by the receive buffer.  May be
            empty or stale when the poll failed.
        channel_map: Positions of line 1, line 2 and total in ``channels``.

    Returns:
        A validated :class:`SensorSample`.

    Raises:
        MalformedPayload: If the body is empty or not JSON, if ``channels``
            is missing, not an array or too short for *channel_map*, or if
            any required field is missing or not coercible to its type.
    """
    if not text or not text.strip():
        raise MalformedPayload("empty response body")

    try:
        document = json.loads(text)
    except (ValueError, RecursionError) as exc:
        # JSONDecodeError, over-long integer literals and runaway nesting.
        raise MalformedPayload(f"response is not JSON: {exc}") from exc

    if not isinstance(document, dict):
        raise MalformedPayload(
            f"response is a JSON {type(document).__name__}, expected object"
        )

    channels = document.get("channels")
    if not isinstance(channels, list):
        raise MalformedPayload("'channels' array missing from response")

    if len(channels) < channel_map.required_length:
        raise MalformedPayload(
            f"'channels' has {len(channels)} entries, "
            f"expected at least {channel_map.required_length}"
        )

    fields: dict[str, Any] = {}
    for name, index in channel_map.items():
        entry = _channel_entry(channels, name, index)
        if name == "total":
            # Total voltage is not consumed; ignore whatever the sensor sends.
            entry = {k: v for k, v in entry.items() if k != "v_V"}
        fields[name] = entry

    sensor_id = document.get("sensorId")
    if isinstance(sensor_id, str):
        fields["sensor_id"] = sensor_id

    try:
        return SensorSample.model_validate(fields)
    except ValidationError as exc:
        raise MalformedPayload(_format_errors(exc)) from exc
