import asyncio
import enum
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .candidate import IceCandidate


class Direction(enum.Enum):
    RECVONLY = "recvonly"
    SENDONLY = "sendonly"


class EngineEvent:
    pass


@dataclass
class CandidateFound(EngineEvent):
    candidate: IceCandidate


@dataclass
class GatheringDone(EngineEvent):
    pass


@dataclass
class EndpointError(EngineEvent):
    description: str
    code: Optional[int] = None


@dataclass
class FlowStateChanged(EngineEvent):
    state: str
    media_type: Optional[str] = None
    outgoing: bool = False


@dataclass
class MediaStateChanged(EngineEvent):
    old_state: Optional[str]
    new_state: str


@dataclass
class EndpointNotice(EngineEvent):
    """
    A notification which is only of diagnostic interest.
    """
    event_type: str
    data: Dict[str, Any] = field(default_factory=dict)


class MediaEngine:
    """
    The media-processing engine, as seen by the signaling core.

    Every operation is a coroutine. Asynchronous notifications for an
    endpoint are delivered in order through :meth:`get_event`.
    """
    def __init__(self) -> None:
        self._events: Dict[str, asyncio.Queue] = {}

    async def create_pipeline(self) -> str:
        raise NotImplementedError

    async def create_endpoint(self, pipeline: str, direction: Direction) -> str:
        raise NotImplementedError

    async def generate_offer(self, endpoint_id: str) -> str:
        raise NotImplementedError

    async def process_answer(self, endpoint_id: str, sdp: str) -> None:
        raise NotImplementedError

    async def gather_candidates(self, endpoint_id: str) -> None:
        raise NotImplementedError

    async def add_ice_candidate(self, endpoint_id: str, candidate: IceCandidate) -> None:
        raise NotImplementedError

    async def connect(self, source_id: str, sink_id: str) -> None:
        raise NotImplementedError

    async def release(self, endpoint_id: str) -> None:
        raise NotImplementedError

    async def get_event(self, endpoint_id: str) -> Optional[EngineEvent]:
        """
        Return the next notification for an endpoint.

        `None` is returned once the endpoint has been released.
        """
        queue = self._events.get(endpoint_id)
        if queue is None:
            return None
        return await queue.get()

    # private

    def open_events(self, endpoint_id: str) -> None:
        self._events[endpoint_id] = asyncio.Queue()

    def dispatch_event(self, endpoint_id: str, event: EngineEvent) -> None:
        queue = self._events.get(endpoint_id)
        if queue is not None:
            queue.put_nowait(event)

    def close_events(self, endpoint_id: str) -> None:
        queue = self._events.pop(endpoint_id, None)
        if queue is not None:
            queue.put_nowait(None)
