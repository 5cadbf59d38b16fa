"""
Client for the shared variable store.

The store is a Redis server that other processes read concurrently.  Each
variable is a Redis key named after the variable (for example
``/CONSUMPTION/L1/P``) that the store's owner declares up front; the bridge
only writes to keys that already exist.  Values are stored as their decimal
text form.

Operations:
- open() / close(): Connect (with a ping) and disconnect.
- find_by_name(name, var_type): Resolve a declared variable to a VarHandle.
- set(handle, value): Range-check *value* against the handle's type and write it.

Supports async context manager protocol for clean resource management.

CHANGELOG:
- 2026-10-17: Initial creation (STORY-006)

TODO:
- None
"""

from __future__ import annotations

import enum
import logging
import math
from dataclasses import dataclass

import redis.asyncio as redis
from redis.exceptions import RedisError

from neurio.src.errors import HandleResolutionError, PublishError, StoreUnavailableError
from neurio.src.models import S16_MAX, S16_MIN, U16_MAX, U64_MAX

logger = logging.getLogger(__name__)


class VarType(enum.Enum):
    """Semantic numeric type of a store variable."""

    FLOAT = "float"
    UINT16 = "uint16"
    INT16 = "int16"
    UINT64 = "uint64"

    def encode(self, value: float | int) -> str:
        """Return the stored text form of *value*.

        Raises:
            ValueError: If *value* does not fit this type.
        """
        if self is VarType.FLOAT:
            value = float(value)
            if not math.isfinite(value):
                raise ValueError(f"{value!r} is not a finite float")
            return repr(value)

        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"{value!r} is not an integer")
        lo, hi = _INT_RANGES[self]
        if not lo <= value <= hi:
            raise ValueError(f"{value} outside {self.value} range [{lo}, {hi}]")
        return str(value)


_INT_RANGES: dict[VarType, tuple[int, int]] = {
    VarType.UINT16: (0, U16_MAX),
    VarType.INT16: (S16_MIN, S16_MAX),
    VarType.UINT64: (0, U64_MAX),
}


@dataclass(frozen=True)
class VarHandle:
    """Resolved reference to a declared store variable."""

    name: str
    var_type: VarType


class VariableStore:
    """Async client for the Redis-backed variable store.

    Args:
        url: Redis connection URL.
        client: Pre-built ``redis.asyncio.Redis`` client.  When given it is
            used as-is and not closed by :meth:`close`.

    Usage::

        async with VariableStore("redis://localhost:6379/0") as store:
            handle = await store.find_by_name("/CONSUMPTION/L1/P", VarType.UINT16)
            await store.set(handle, 359)
    """

    def __init__(self, url: str, *, client: redis.Redis | None = None) -> None:
        self._url = url
        self._client = client
        self._owns_client = client is None

    async def open(self) -> None:
        """Connect to the store and check it answers.

        Raises:
            StoreUnavailableError: If the store cannot be reached.
        """
        if self._client is None:
            self._client = redis.from_url(self._url)
        try:
            await self._client.ping()
        except (RedisError, OSError) as exc:
            await self.close()
            raise StoreUnavailableError(
                f"Variable store at {self._url} unavailable: {exc}"
            ) from exc
        logger.info("Connected to variable store at %s", self._url)

    async def close(self) -> None:
        """Close the connection if this instance created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> VariableStore:
        await self.open()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def _require_client(self) -> redis.Redis:
        if self._client is None:
            raise RuntimeError("VariableStore is not open")
        return self._client

    async def find_by_name(self, name: str, var_type: VarType) -> VarHandle:
        """Resolve *name* to a handle.

        Raises:
            HandleResolutionError: If the variable is not declared or the
                lookup itself failed.
        """
        client = self._require_client()
        try:
            exists = await client.exists(name)
        except RedisError as exc:
            raise HandleResolutionError(name, str(exc)) from exc
        if not exists:
            raise HandleResolutionError(name)
        return VarHandle(name=name, var_type=var_type)

    async def set(self, handle: VarHandle, value: float | int) -> None:
        """Write *value* to the variable behind *handle*.

        Raises:
            PublishError: If *value* does not fit the variable's type or the
                store rejected the write.
        """
        client = self._require_client()
        try:
            encoded = handle.var_type.encode(value)
        except (TypeError, ValueError) as exc:
            raise PublishError(handle.name, str(exc)) from exc
        try:
            await client.set(handle.name, encoded)
        except RedisError as exc:
            raise PublishError(handle.name, str(exc)) from exc
