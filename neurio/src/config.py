"""
Bridge configuration loaded from command-line flags and environment variables.

Uses Pydantic BaseSettings for env var loading and validation.  Every setting
can come from a ``NEURIO_*`` environment variable (or a ``.env`` file); flags
given on the command line override the environment.

Flags:
    -v              verbose mode (log every raw sensor response)
    -h              display usage and exit with status 1
    -u ADDRESS      Neurio sensor IP address or hostname
    -a CREDENTIAL   pre-encoded basic auth credential
    -p SECONDS      poll interval
    -t SECONDS      HTTP request timeout
    -r URL          variable store URL
    -s PATH         health file path
    -m L1,L2,TOTAL  channel index mapping

CHANGELOG:
- 2026-10-17: Accept NEURIO_CHANNEL_MAP in the -m comma form; map SettingsError
- 2026-10-17: Wire -p into the loop as the authoritative poll interval
- 2026-10-17: Initial creation (STORY-001)

TODO:
- None
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from typing import Annotated, Any

import httpx
from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict, SettingsError

from neurio.src.errors import ConfigError

DEFAULT_ADDRESS = "192.168.86.31"
"""Sensor address used when neither -u nor NEURIO_ADDRESS is given."""

STATUS_PATH = "/current-sample"
"""Sensor endpoint returning the current channel readings."""

_STORE_SCHEMES = ("redis://", "rediss://", "unix://")

USAGE = (
    "usage: {prog} [-v] [-h] [-u address] [-a basic auth] [-p seconds]\n"
    "       [-t seconds] [-r store url] [-s health path] [-m l1,l2,total]\n"
    "-v : verbose mode\n"
    "-h : display this help\n"
    "-u : neurio sensor IP address\n"
    "-a : neurio basic auth\n"
    "-p : poll interval in seconds\n"
    "-t : request timeout in seconds\n"
    "-r : variable store URL\n"
    "-s : health file path\n"
    "-m : channel indices for line 1, line 2 and total\n"
)


class NeurioSettings(BaseSettings):
    """Bridge configuration.

    Attributes:
        address: Neurio sensor IP address / hostname on the local LAN.
        auth: Pre-encoded basic auth credential, attached verbatim.
        poll_interval_s: Seconds between poll cycles.
        request_timeout_s: Upper bound on one HTTP exchange in seconds.
        store_url: Redis URL of the variable store.
        health_path: Optional health JSON file path; ``None`` disables it.
        channel_map: Indices into the ``channels`` array for line 1,
            line 2 and total, in that order.
        verbose: Log the raw response body after every successful poll.
    """

    model_config = SettingsConfigDict(
        env_prefix="NEURIO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    address: str = DEFAULT_ADDRESS
    auth: str
    poll_interval_s: float = 1.0
    request_timeout_s: float = 5.0
    store_url: str = "redis://localhost:6379/0"
    health_path: str | None = None
    channel_map: Annotated[tuple[int, int, int], NoDecode] = (0, 1, 2)
    verbose: bool = False

    @field_validator("address")
    @classmethod
    def address_must_be_host(cls, v: str) -> str:
        """Reject empty addresses and anything carrying a path or spaces."""
        v = v.strip()
        if not v:
            raise ValueError("NEURIO_ADDRESS must not be empty")
        if "/" in v or any(c.isspace() for c in v):
            raise ValueError(f"NEURIO_ADDRESS must be a bare host[:port] (got: '{v}')")
        return v

    @field_validator("auth")
    @classmethod
    def auth_must_be_present(cls, v: str) -> str:
        """The basic credential is required and attached verbatim."""
        v = v.strip()
        if not v:
            raise ValueError("NEURIO_AUTH must not be empty")
        return v

    @field_validator("poll_interval_s", "request_timeout_s")
    @classmethod
    def seconds_must_be_positive(cls, v: float) -> float:
        """Intervals and timeouts must be strictly positive."""
        if v <= 0:
            raise ValueError("interval and timeout values must be > 0")
        return v

    @field_validator("store_url")
    @classmethod
    def store_url_must_be_redis(cls, v: str) -> str:
        """The variable store is reached through a Redis URL."""
        if not v.lower().startswith(_STORE_SCHEMES):
            raise ValueError(
                f"NEURIO_STORE_URL must use one of {', '.join(_STORE_SCHEMES)} "
                f"(got: '{v}')"
            )
        return v

    @field_validator("channel_map", mode="before")
    @classmethod
    def split_channel_map(cls, v: Any) -> Any:
        """Accept ``NEURIO_CHANNEL_MAP`` as ``0,1,2`` (or ``[0,1,2]``), like -m."""
        if isinstance(v, str):
            return [p.strip() for p in v.strip().strip("[]").split(",")]
        return v

    @field_validator("channel_map")
    @classmethod
    def channel_map_must_be_distinct(
        cls, v: tuple[int, int, int]
    ) -> tuple[int, int, int]:
        """Channel indices must be non-negative and refer to distinct entries."""
        if any(i < 0 for i in v):
            raise ValueError("channel indices must be >= 0")
        if len(set(v)) != len(v):
            raise ValueError("channel indices must be distinct")
        return v

    @property
    def url(self) -> str:
        """Sensor status endpoint derived from :attr:`address`."""
        return endpoint_url(self.address)


def endpoint_url(address: str) -> str:
    """Build and parse the status endpoint URL for *address*.

    Raises:
        ConfigError: If the resulting URL cannot be parsed or has no host.
    """
    try:
        url = httpx.URL(f"http://{address}{STATUS_PATH}")
    except (httpx.InvalidURL, TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid sensor address '{address}': {exc}") from exc
    if not url.host:
        raise ConfigError(f"Invalid sensor address '{address}': no host")
    return str(url)


# ---------------------------------------------------------------------------
# Command line
# ---------------------------------------------------------------------------


class UsageRequested(Exception):
    """Raised when -h is given."""


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that raises instead of exiting with status 2."""

    def error(self, message: str) -> None:  # type: ignore[override]
        raise ConfigError(message)


def _channel_map(value: str) -> tuple[int, ...]:
    parts = [p.strip() for p in value.split(",")]
    if len(parts) != 3:
        raise argparse.ArgumentTypeError(
            f"expected three comma separated indices (got: '{value}')"
        )
    try:
        return tuple(int(p) for p in parts)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid channel index in '{value}'") from exc


def build_parser(prog: str = "neurio") -> argparse.ArgumentParser:
    """Build the command-line parser.

    Every option defaults to ``argparse.SUPPRESS`` so that only flags that
    were actually given override the environment.
    """
    parser = _ArgumentParser(prog=prog, add_help=False)
    parser.add_argument("-v", dest="verbose", action="store_true", default=argparse.SUPPRESS)
    parser.add_argument("-h", dest="help", action="store_true", default=False)
    parser.add_argument("-u", dest="address", default=argparse.SUPPRESS)
    parser.add_argument("-a", dest="auth", default=argparse.SUPPRESS)
    parser.add_argument("-p", dest="poll_interval_s", type=float, default=argparse.SUPPRESS)
    parser.add_argument(
        "-t", dest="request_timeout_s", type=float, default=argparse.SUPPRESS
    )
    parser.add_argument("-r", dest="store_url", default=argparse.SUPPRESS)
    parser.add_argument("-s", dest="health_path", default=argparse.SUPPRESS)
    parser.add_argument("-m", dest="channel_map", type=_channel_map, default=argparse.SUPPRESS)
    return parser


def usage(prog: str = "neurio", file=None) -> None:
    """Write the usage message to *file* (stderr by default)."""
    print(USAGE.format(prog=prog), end="", file=file or sys.stderr)


def load_settings(argv: Sequence[str], prog: str = "neurio") -> NeurioSettings:
    """Parse *argv* and merge it over the environment.

    Args:
        argv: Command-line arguments, excluding the program name.
        prog: Program name shown in messages.

    Returns:
        The validated settings.

    Raises:
        UsageRequested: If ``-h`` was given.
        ConfigError: On unknown flags, malformed values, a missing
            credential, or an address that does not form a valid URL.
    """
    args = vars(build_parser(prog).parse_args(list(argv)))
    if args.pop("help"):
        raise UsageRequested()

    try:
        settings = NeurioSettings(**args)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'settings'}: {err['msg']}"
            for err in exc.errors()
        )
        raise ConfigError(problems) from exc
    except SettingsError as exc:
        raise ConfigError(str(exc)) from exc

    # Fails early when the address cannot form a URL.
    endpoint_url(settings.address)
    return settings
