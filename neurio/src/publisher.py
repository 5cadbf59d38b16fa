"""
Variable publisher: writes SensorSample readings to the variable store.

Eleven destination variables are published per cycle:

=====================================  ======  ==============================
Variable                               Type    Source
=====================================  ======  ==============================
/CONSUMPTION/L1/V                      float   line1.voltage_v
/CONSUMPTION/L1/P                      uint16  line1.power_w
/CONSUMPTION/L1/Q                      int16   line1.reactive_power_var
/CONSUMPTION/L1/ENERGY_IMP             uint64  line1.energy_imp_ws
/CONSUMPTION/L2/V                      float   line2.voltage_v
/CONSUMPTION/L2/P                      uint16  line2.power_w
/CONSUMPTION/L2/Q                      int16   line2.reactive_power_var
/CONSUMPTION/L2/ENERGY_IMP             uint64  line2.energy_imp_ws
/CONSUMPTION/TOTAL/P                   uint16  total.power_w
/CONSUMPTION/TOTAL/Q                   int16   total.reactive_power_var
/CONSUMPTION/TOTAL/ENERGY_IMP          uint64  total.energy_imp_ws
=====================================  ======  ==============================

Handles are resolved once at startup.  A variable that could not be resolved
stays disabled for the process lifetime; writes to it are skipped with a
warning.  Writes are independent: a failure on one variable does not stop the
others, and there is no multi-variable commit.

CHANGELOG:
- 2026-10-17: Initial creation (STORY-007)

TODO:
- None
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from neurio.src.errors import HandleResolutionError, PublishError
from neurio.src.varstore import VarHandle, VarType

if TYPE_CHECKING:
    from neurio.src.models import SensorSample
    from neurio.src.varstore import VariableStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PublishedVariable:
    """Destination variable and the reading it is fed from."""

    name: str
    var_type: VarType
    channel: str
    field: str


VARIABLES: tuple[PublishedVariable, ...] = (
    PublishedVariable("/CONSUMPTION/L1/V", VarType.FLOAT, "line1", "voltage_v"),
    PublishedVariable("/CONSUMPTION/L1/P", VarType.UINT16, "line1", "power_w"),
    PublishedVariable("/CONSUMPTION/L1/Q", VarType.INT16, "line1", "reactive_power_var"),
    PublishedVariable("/CONSUMPTION/L1/ENERGY_IMP", VarType.UINT64, "line1", "energy_imp_ws"),
    PublishedVariable("/CONSUMPTION/L2/V", VarType.FLOAT, "line2", "voltage_v"),
    PublishedVariable("/CONSUMPTION/L2/P", VarType.UINT16, "line2", "power_w"),
    PublishedVariable("/CONSUMPTION/L2/Q", VarType.INT16, "line2", "reactive_power_var"),
    PublishedVariable("/CONSUMPTION/L2/ENERGY_IMP", VarType.UINT64, "line2", "energy_imp_ws"),
    PublishedVariable("/CONSUMPTION/TOTAL/P", VarType.UINT16, "total", "power_w"),
    PublishedVariable("/CONSUMPTION/TOTAL/Q", VarType.INT16, "total", "reactive_power_var"),
    PublishedVariable(
        "/CONSUMPTION/TOTAL/ENERGY_IMP", VarType.UINT64, "total", "energy_imp_ws"
    ),
)
"""All published variables, in publication order."""

VarHandles = dict[str, VarHandle | None]
"""Variable name -> resolved handle, or None when resolution failed."""


async def resolve_handles(store: VariableStore) -> VarHandles:
    """Resolve every destination variable by name.

    Best-effort: a variable that cannot be resolved is logged and mapped to
    ``None``; startup continues.

    Returns:
        A dict with one entry per variable in :data:`VARIABLES`.
    """
    handles: VarHandles = {}
    for var in VARIABLES:
        try:
            handles[var.name] = await store.find_by_name(var.name, var.var_type)
        except HandleResolutionError as exc:
            logger.warning("%s; writes to it are disabled", exc)
            handles[var.name] = None

    resolved = sum(1 for h in handles.values() if h is not None)
    logger.info("Resolved %d/%d destination variables", resolved, len(VARIABLES))
    return handles


async def publish(
    store: VariableStore,
    handles: VarHandles,
    sample: SensorSample,
) -> int:
    """Write the eleven readings of *sample* to their variables.

    Args:
        store: Open variable store.
        handles: Handles from :func:`resolve_handles`.
        sample: Readings extracted from the latest response.

    Returns:
        Number of variables actually written.
    """
    written = 0
    for var in VARIABLES:
        handle = handles.get(var.name)
        if handle is None:
            logger.warning("Skipping %s: handle not resolved", var.name)
            continue

        value = getattr(getattr(sample, var.channel), var.field)
        if value is None:
            logger.warning("Skipping %s: %s.%s missing", var.name, var.channel, var.field)
            continue

        try:
            await store.set(handle, value)
        except PublishError as exc:
            logger.warning("%s", exc)
            continue
        written += 1

    return written
