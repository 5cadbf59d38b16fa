"""
Bridge daemon main loop for the Neurio-to-variable-store pipeline.

Runs a single asyncio poll loop.  Each iteration:
1. waits for the poll interval (woken early by a shutdown request),
2. resets the session's receive buffer and polls the sensor,
3. extracts line 1 / line 2 / total readings from the response,
4. publishes the eleven readings to the variable store.

The loop is resilient: a failure at any stage is logged and the cycle is
dropped; the next interval proceeds normally.  SIGTERM/SIGINT set the
session's stop event, letting an in-flight cycle finish before the loop
exits and the store connection is closed.

Structured JSON logging is used for all events.  An optional HealthWriter
rewrites a JSON health file after every cycle.

CHANGELOG:
- 2026-10-17: Initial creation (STORY-009)

TODO:
- None
"""

from __future__ import annotations

import asyncio
import contextlib
import hashlib
import json
import logging
import signal
import sys
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from neurio.src.errors import ConfigError, MalformedPayload, StoreUnavailableError
from neurio.src.extractor import extract
from neurio.src.health import HealthWriter
from neurio.src.publisher import publish, resolve_handles
from neurio.src.session import LoopState, Session

if TYPE_CHECKING:
    from neurio.src.config import NeurioSettings
    from neurio.src.poller import Poller
    from neurio.src.varstore import VariableStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Structured JSON logging setup
# ---------------------------------------------------------------------------


def configure_logging(level: int = logging.INFO) -> None:
    """Configure structured JSON logging for the bridge daemon.

    Sets up the root logger with a JSON-formatted handler writing to stderr.
    """

    class _JsonFormatter(logging.Formatter):
        """Minimal JSON log formatter."""

        def format(self, record: logging.LogRecord) -> str:
            log_entry = {
                "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
                "level": record.levelname,
                "logger": record.name,
                "msg": record.getMessage(),
            }
            if record.exc_info and record.exc_info[1] is not None:
                log_entry["exception"] = self.formatException(record.exc_info)
            return json.dumps(log_entry)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_JsonFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)


def _masked_token(value: str | None) -> str:
    """Return a short non-reversible token fingerprint for diagnostics."""
    if not value:
        return "empty"
    digest = hashlib.sha256(value.encode("utf-8")).hexdigest()[:10]
    return f"len={len(value)} sha256={digest}"


def log_config_summary(settings: NeurioSettings) -> None:
    """Log a config summary at startup, masking the basic credential."""
    logger.info(
        "Neurio bridge starting with config: "
        "address=%s, url=%s, poll_interval_s=%s, request_timeout_s=%s, "
        "store_url=%s, health_path=%s, channel_map=%s, verbose=%s, "
        "auth_masked=%s",
        settings.address,
        settings.url,
        settings.poll_interval_s,
        settings.request_timeout_s,
        settings.store_url,
        settings.health_path,
        settings.channel_map,
        settings.verbose,
        _masked_token(settings.auth),
    )


# ---------------------------------------------------------------------------
# Single-iteration function (easily testable)
# ---------------------------------------------------------------------------


async def _poll_once(
    *,
    session: Session,
    poller: Poller,
    store: VariableStore,
    health: HealthWriter | None = None,
) -> int | None:
    """Execute a single reset-poll-extract-publish cycle.

    Catches all exceptions so that the caller's loop is never broken.

    Returns:
        Number of variables written, or ``None`` if the cycle was dropped.
    """
    written: int | None = None
    try:
        session.buffer.reset()
        if await poller.poll(session.buffer):
            sample = extract(session.buffer.text, channel_map=session.channel_map)
            written = await publish(store, session.handles, sample)
            logger.debug(
                "Published %d variables (sensor=%s)", written, sample.sensor_id
            )
        else:
            logger.debug("No fresh data this cycle, skipping extract and publish")
    except MalformedPayload as exc:
        logger.warning("Malformed sensor payload, skipping publish: %s", exc)
    except Exception:
        logger.error("Poll cycle error", exc_info=True)

    if health is not None:
        try:
            health.record_poll(poller.consecutive_failures)
            if written is not None:
                health.record_publish(written)
        except Exception:
            logger.warning("Failed to write health file", exc_info=True)

    return written


# ---------------------------------------------------------------------------
# Loop runner
# ---------------------------------------------------------------------------


async def run_loop(
    *,
    session: Session,
    poller: Poller,
    store: VariableStore,
    health: HealthWriter | None = None,
) -> None:
    """Run the poll loop until the session's stop event is set.

    Sleeps for the poll interval first, then polls.  A stop request during
    the sleep wakes the loop immediately and no further poll is made; a stop
    request during a poll lets that cycle complete.
    """
    session.transition(LoopState.RUNNING)
    logger.info("Poll loop started (interval=%ss)", session.poll_interval_s)
    while session.running:
        # Use wait with timeout so we can check shutdown between sleeps
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(
                session.stop_event.wait(),
                timeout=session.poll_interval_s,
            )
        if not session.running:
            break
        await _poll_once(session=session, poller=poller, store=store, health=health)
    session.transition(LoopState.STOPPING)
    logger.info("Poll loop stopped")


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def _handle_signal(session: Session) -> None:
    """Handle SIGTERM/SIGINT by requesting a graceful stop."""
    logger.info("Received shutdown signal, initiating graceful shutdown")
    session.request_stop()


async def async_main(settings: NeurioSettings) -> int:
    """Async entrypoint: open the store, resolve handles, run the loop.

    Returns:
        Process exit status.
    """
    from neurio.src.poller import Poller
    from neurio.src.varstore import VariableStore

    log_config_summary(settings)
    session = Session.from_settings(settings)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, _handle_signal, session)

    store = VariableStore(settings.store_url)
    try:
        try:
            await store.open()
        except StoreUnavailableError as exc:
            logger.error("%s", exc)
            return 1

        session.handles = await resolve_handles(store)
        health = HealthWriter(settings.health_path) if settings.health_path else None

        async with Poller(
            url=session.url,
            auth=session.auth,
            timeout_s=session.request_timeout_s,
            verbose=session.verbose,
        ) as poller:
            await run_loop(session=session, poller=poller, store=store, health=health)
    finally:
        await store.close()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.remove_signal_handler(sig)
        session.transition(LoopState.STOPPED)
        logger.info("Shutdown complete")

    return 0


def main(argv: Sequence[str] | None = None) -> None:
    """Synchronous entrypoint for the bridge daemon."""
    from neurio.src.config import UsageRequested, load_settings, usage

    configure_logging()
    prog = "neurio"
    if argv is None:
        argv = sys.argv[1:]

    try:
        settings = load_settings(argv, prog=prog)
    except UsageRequested:
        usage(prog)
        sys.exit(1)
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        usage(prog)
        sys.exit(1)

    sys.exit(asyncio.run(async_main(settings)))


if __name__ == "__main__":
    main()
