"""
Shared test fixtures for bridge tests.

Provides environment isolation for NeurioSettings, the reference sensor
payload, and a dict-backed mock of the Redis client behind the variable store.

CHANGELOG:
- 2026-10-17: Initial creation (STORY-001)

TODO:
- None
"""

from __future__ import annotations

import json
from unittest.mock import AsyncMock

import pytest
from neurio.src.publisher import VARIABLES

_ALL_NEURIO_ENV_VARS = (
    "NEURIO_ADDRESS",
    "NEURIO_AUTH",
    "NEURIO_POLL_INTERVAL_S",
    "NEURIO_REQUEST_TIMEOUT_S",
    "NEURIO_STORE_URL",
    "NEURIO_HEALTH_PATH",
    "NEURIO_CHANNEL_MAP",
    "NEURIO_VERBOSE",
)

SCENARIO_PAYLOAD = {
    "sensorId": "0x0000C47F510179B7",
    "channels": [
        {"p_W": 359, "q_VAR": -117, "v_V": 119.497, "eImp_Ws": 100227460449},
        {"p_W": 262, "q_VAR": -49, "v_V": 119.349, "eImp_Ws": 69186339532},
        {"p_W": 621, "q_VAR": -166, "eImp_Ws": 169413800005},
    ],
}
"""Reference /current-sample body: line 1, line 2, total."""

SCENARIO_PUBLISHED = {
    "/CONSUMPTION/L1/P": "359",
    "/CONSUMPTION/L1/Q": "-117",
    "/CONSUMPTION/L1/V": "119.497",
    "/CONSUMPTION/L1/ENERGY_IMP": "100227460449",
    "/CONSUMPTION/L2/P": "262",
    "/CONSUMPTION/L2/Q": "-49",
    "/CONSUMPTION/L2/V": "119.349",
    "/CONSUMPTION/L2/ENERGY_IMP": "69186339532",
    "/CONSUMPTION/TOTAL/P": "621",
    "/CONSUMPTION/TOTAL/Q": "-166",
    "/CONSUMPTION/TOTAL/ENERGY_IMP": "169413800005",
}
"""Store contents expected after publishing SCENARIO_PAYLOAD."""


@pytest.fixture(autouse=True)
def _clean_neurio_env(monkeypatch: pytest.MonkeyPatch, tmp_path: str) -> None:
    """Remove all NEURIO_* env vars and isolate from .env files before each test."""
    for var in _ALL_NEURIO_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture()
def scenario_body() -> bytes:
    """The reference sensor response as raw bytes."""
    return json.dumps(SCENARIO_PAYLOAD).encode("utf-8")


@pytest.fixture()
def store_data() -> dict[str, str]:
    """Backing dict of the mocked store, with every variable declared as "0"."""
    return {var.name: "0" for var in VARIABLES}


@pytest.fixture()
def mock_redis(store_data: dict[str, str]) -> AsyncMock:
    """Create a mock async Redis client reading and writing *store_data*.

    Returns:
        AsyncMock: A mock that behaves like a redis.asyncio.Redis client.
    """

    async def _exists(*names: str) -> int:
        return sum(1 for n in names if n in store_data)

    async def _set(name: str, value: str) -> bool:
        store_data[name] = value
        return True

    client = AsyncMock()
    client.ping = AsyncMock(return_value=True)
    client.exists = AsyncMock(side_effect=_exists)
    client.set = AsyncMock(side_effect=_set)
    client.aclose = AsyncMock()
    return client


@pytest.fixture()
def scenario_payload() -> dict:
    """The reference sensor response as a decoded JSON document."""
    return json.loads(json.dumps(SCENARIO_PAYLOAD))


@pytest.fixture()
def scenario_published() -> dict[str, str]:
    """Store contents expected after publishing the reference response."""
    return dict(SCENARIO_PUBLISHED)
