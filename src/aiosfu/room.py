import asyncio
import logging
from typing import Optional

from .engine import MediaEngine
from .registry import EndpointRegistry, SessionRegistry

logger = logging.getLogger(__name__)

NEGOTIATION_TIMEOUT = 30


class Room:
    """
    The audio room shared by every connection.

    All endpoints live in a single media pipeline which is created on the
    first join and kept for the lifetime of the room.

    :param engine: The media engine endpoints are created in.
    :param negotiation_timeout: How long, in seconds, an endpoint may take
        to reach the connected state. `None` disables the limit.
    """
    def __init__(self, engine: MediaEngine,
                 negotiation_timeout: Optional[float] = NEGOTIATION_TIMEOUT) -> None:
        self.engine = engine
        self.endpoints = EndpointRegistry()
        self.sessions = SessionRegistry()
        self.negotiation_timeout = negotiation_timeout

        #: Serialises joins and leaves.
        self.topology_lock = asyncio.Lock()

        self._pipeline: Optional[str] = None
        self._pipeline_lock = asyncio.Lock()

    @property
    def pipeline(self) -> Optional[str]:
        return self._pipeline

    async def get_pipeline(self) -> str:
        """
        Return the media pipeline, creating it on first use.
        """
        if self._pipeline is None:
            async with self._pipeline_lock:
                if self._pipeline is None:
                    self._pipeline = await self.engine.create_pipeline()
                    logger.info("%s Created media pipeline %s", repr(self), self._pipeline)
        return self._pipeline

    def __repr__(self) -> str:
        return "Room(%d users, %d endpoints)" % (len(self.sessions), len(self.endpoints))
