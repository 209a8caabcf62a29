import asyncio
import enum
import logging
from typing import Any, Dict, List, Optional

from websockets.exceptions import ConnectionClosed

from . import protocol
from .engine import Direction

logger = logging.getLogger(__name__)


class Role(enum.Enum):
    TALKER = "talker"
    LISTENER = "listener"

    @property
    def direction(self) -> Direction:
        # a talker receives the owner's audio, a listener sends audio to its owner
        if self is Role.TALKER:
            return Direction.RECVONLY
        return Direction.SENDONLY

    @property
    def offer_id(self) -> str:
        if self is Role.TALKER:
            return protocol.MAKE_TALKER
        return protocol.MAKE_LISTENER


class State(enum.Enum):
    CREATED = 0
    OFFER_SENT = 1
    GATHERING = 2
    ANSWER_APPLIED = 3
    CONNECTED = 4
    CLOSED = 5


class Endpoint:
    """
    A media endpoint owned by one session.
    """
    def __init__(self, id: str, role: Role, session_id: str,
                 source_id: Optional[str] = None) -> None:
        self.id = id
        self.role = role
        self.session_id = session_id
        #: Talker endpoint this listener receives from.
        self.source_id = source_id
        self.state = State.CREATED

        # private
        self.gathering = False
        self.answering = False
        #: Media connected while the answer was being applied.
        self.media_connected = False
        self.timeout_handle: Optional[asyncio.TimerHandle] = None
        self.pump: Optional[asyncio.Future] = None

    @property
    def direction(self) -> Direction:
        return self.role.direction

    def __repr__(self) -> str:
        return "Endpoint(%s %s)" % (self.role.value, self.id)


class UserSession:
    """
    The signaling state of one connected participant.

    :param id: The session identifier, stable for the connection lifetime.
    :param websocket: The connection outbound envelopes are written to.
    """
    def __init__(self, id: str, websocket: Any) -> None:
        self.id = id
        self.closed = False
        self.joined = False
        #: The receive-only endpoint carrying this participant's audio.
        self.talker: Optional[Endpoint] = None
        #: One send-only endpoint per other participant.
        self.listeners: List[Endpoint] = []

        self._send_lock = asyncio.Lock()
        self._websocket = websocket

    def endpoints(self) -> List[Endpoint]:
        endpoints = list(self.listeners)
        if self.talker is not None:
            endpoints.insert(0, self.talker)
        return endpoints

    def remove_endpoint(self, endpoint: Endpoint) -> None:
        if self.talker is endpoint:
            self.talker = None
        elif endpoint in self.listeners:
            self.listeners.remove(endpoint)

    async def send(self, message: Dict[str, Any]) -> None:
        """
        Send one envelope to the participant.

        Messages sent after the connection has gone away are dropped.
        """
        data = protocol.encode_envelope(message)
        async with self._send_lock:
            if self.closed:
                self.__log_debug("Skip, session is closed: %s", data)
                return
            self.__log_debug("> %s", data)
            try:
                await self._websocket.send(data)
            except ConnectionClosed:
                self.__log_debug("Skip, connection is closed")

    async def send_error(self, text: str) -> None:
        logger.error("%s %s", repr(self), text)
        await self.send(protocol.make_error(text))

    def __log_debug(self, msg: str, *args: Any) -> None:
        logger.debug(repr(self) + " " + msg, *args)

    def __repr__(self) -> str:
        return "UserSession(%s)" % self.id
