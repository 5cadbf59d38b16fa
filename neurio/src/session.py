"""
Session state shared by the poll loop, poller, extractor and publisher.

A single Session is built in the entry point and passed explicitly to every
stage.  The stop request is an asyncio.Event set from the event loop's signal
handler; the loop checks it once per iteration and while sleeping.

CHANGELOG:
- 2026-10-17: Initial creation (STORY-008)

TODO:
- None
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from neurio.src.config import endpoint_url
from neurio.src.extractor import DEFAULT_CHANNEL_MAP, ChannelMap
from neurio.src.rxbuffer import ReceiveBuffer

if TYPE_CHECKING:
    from neurio.src.config import NeurioSettings
    from neurio.src.publisher import VarHandles

logger = logging.getLogger(__name__)


class LoopState(enum.Enum):
    """Lifecycle of the poll loop."""

    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


@dataclass
class Session:
    """Process-lifetime state of the bridge."""

    address: str
    auth: str
    url: str
    poll_interval_s: float
    request_timeout_s: float = 5.0
    verbose: bool = False
    channel_map: ChannelMap = DEFAULT_CHANNEL_MAP
    buffer: ReceiveBuffer = field(default_factory=ReceiveBuffer)
    handles: VarHandles = field(default_factory=dict)
    stop_event: asyncio.Event = field(default_factory=asyncio.Event)
    state: LoopState = LoopState.STARTING

    @classmethod
    def from_settings(cls, settings: NeurioSettings) -> Session:
        return cls(
            address=settings.address,
            auth=settings.auth,
            url=endpoint_url(settings.address),
            poll_interval_s=settings.poll_interval_s,
            request_timeout_s=settings.request_timeout_s,
            verbose=settings.verbose,
            channel_map=ChannelMap.from_tuple(settings.channel_map),
        )

    @property
    def running(self) -> bool:
        """False once a stop has been requested."""
        return not self.stop_event.is_set()

    def transition(self, state: LoopState) -> None:
        """Move to *state*, logging the change."""
        if state is not self.state:
            logger.info("Loop state %s -> %s", self.state.value, state.value)
            self.state = state

    def request_stop(self) -> None:
        """Clear the running flag.  Safe to call repeatedly."""
        if self.state is LoopState.RUNNING:
            self.transition(LoopState.STOPPING)
        self.stop_event.set()
