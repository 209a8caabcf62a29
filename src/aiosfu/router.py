import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from . import exceptions, protocol
from .fanout import FanoutTopologyBuilder
from .room import Room
from .session import Endpoint, UserSession
from .signaling import SignalingStateMachine

logger = logging.getLogger(__name__)

Handler = Callable[[UserSession, Dict[str, Any]], Awaitable[None]]


class MessageRouter:
    """
    Dispatches inbound envelopes to the signaling state machine.
    """
    def __init__(self, room: Room,
                 signaling: Optional[SignalingStateMachine] = None,
                 fanout: Optional[FanoutTopologyBuilder] = None) -> None:
        self.room = room
        self.signaling = signaling or SignalingStateMachine(room)
        self.fanout = fanout or FanoutTopologyBuilder(room, self.signaling)

        self._handlers: Dict[str, Handler] = {
            protocol.START: self.handle_start,
            protocol.WEBRTCPEER_READY: self.handle_peer_ready,
            protocol.PROCESS_SDP_ANSWER: self.handle_sdp_answer,
            protocol.ADD_ICE_CANDIDATE: self.handle_ice_candidate,
            protocol.STOP: self.handle_stop,
            protocol.ERROR: self.handle_error,
        }

    async def handle_message(self, session: UserSession, data: Any) -> None:
        """
        Handle one inbound envelope.

        Protocol errors are logged and ignored. Any other failure is
        reported to the session, which stays connected.
        """
        try:
            message = protocol.decode_envelope(data)
        except exceptions.ProtocolError as exc:
            logger.warning("%s Skip, %s", repr(session), exc)
            return
        logger.info("%s < %s", repr(session), message["id"])

        handler = self._handlers.get(message["id"])
        if handler is None:
            logger.warning("%s Skip, invalid message, id: %s", repr(session), message["id"])
            return

        try:
            await handler(session, message)
        except exceptions.ProtocolError as exc:
            logger.warning("%s Skip, %s", repr(session), exc)
        except Exception as exc:
            logger.exception("%s %s failed", repr(session), message["id"])
            await session.send_error("[aiosfu] Exception: %s" % exc)

    # handlers

    async def handle_start(self, session: UserSession, message: Dict[str, Any]) -> None:
        await self.fanout.join(session)

    async def handle_peer_ready(self, session: UserSession, message: Dict[str, Any]) -> None:
        endpoint = self.lookup_endpoint(session, message)
        if endpoint is not None:
            await self.signaling.peer_ready(endpoint)

    async def handle_sdp_answer(self, session: UserSession, message: Dict[str, Any]) -> None:
        endpoint = self.lookup_endpoint(session, message)
        if endpoint is not None:
            sdp_answer = protocol.require_string(message, "sdpAnswer")
            await self.signaling.process_answer(endpoint, sdp_answer)

    async def handle_ice_candidate(self, session: UserSession, message: Dict[str, Any]) -> None:
        endpoint = self.lookup_endpoint(session, message)
        if endpoint is not None:
            candidate = protocol.require_candidate(message)
            await self.signaling.add_remote_candidate(endpoint, candidate)

    async def handle_stop(self, session: UserSession, message: Dict[str, Any]) -> None:
        await self.signaling.stop(session)

    async def handle_error(self, session: UserSession, message: Dict[str, Any]) -> None:
        text = protocol.require_string(message, "message")
        logger.error("%s Browser error: %s", repr(session), text)

        # assume the other side stops after an error
        await self.signaling.stop(session)

    def lookup_endpoint(self, session: UserSession, message: Dict[str, Any]) -> Optional[Endpoint]:
        """
        Resolve the endpoint a message refers to.

        Unknown endpoints, and endpoints owned by another session, resolve
        to `None`.
        """
        endpoint_id = protocol.require_string(message, "webRtcEpId")
        endpoint = self.room.endpoints.lookup(endpoint_id)
        if endpoint is None:
            logger.warning("%s Skip, unknown endpoint, id: %s", repr(session), endpoint_id)
            return None
        if endpoint.session_id != session.id:
            logger.warning("%s Skip, endpoint %s belongs to another user",
                           repr(session), endpoint_id)
            return None
        return endpoint
