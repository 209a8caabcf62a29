import asyncio
import logging
from typing import Any, Optional

from . import exceptions, protocol
from .candidate import IceCandidate
from .engine import (
    CandidateFound,
    EndpointError,
    EndpointNotice,
    EngineEvent,
    FlowStateChanged,
    GatheringDone,
    MediaStateChanged,
)
from .room import Room
from .session import Endpoint, Role, State, UserSession

logger = logging.getLogger(__name__)


class SignalingStateMachine:
    """
    Drives the offer / answer / candidate exchange of every endpoint.

    Transitions are triggered by inbound messages and by engine
    notifications, which are consumed by one task per endpoint so that
    their ordering is preserved.
    """
    def __init__(self, room: Room) -> None:
        self.room = room

    async def create_endpoint(self, session: UserSession, role: Role,
                              source: Optional[Endpoint] = None) -> Endpoint:
        """
        Create an endpoint owned by `session` and register it.

        For a listener, `source` is the talker it will receive audio from.
        """
        pipeline = await self.room.get_pipeline()
        endpoint_id = await self.room.engine.create_endpoint(pipeline, role.direction)
        endpoint = Endpoint(
            id=endpoint_id,
            role=role,
            session_id=session.id,
            source_id=source.id if source is not None else None)

        self.room.endpoints.register(endpoint.id, endpoint)
        if role == Role.TALKER:
            session.talker = endpoint
        else:
            session.listeners.append(endpoint)

        endpoint.pump = asyncio.ensure_future(self._pump(endpoint))
        if self.room.negotiation_timeout is not None:
            loop = asyncio.get_event_loop()
            endpoint.timeout_handle = loop.call_later(
                self.room.negotiation_timeout, self._negotiation_expired, endpoint)

        self.__log_info("New %s for %s", repr(endpoint), repr(session))
        return endpoint

    async def negotiate(self, endpoint: Endpoint) -> None:
        """
        Generate an SDP offer and send it to the endpoint's owner.
        """
        if endpoint.state != State.CREATED:
            raise exceptions.ProtocolError("%s offer already sent" % repr(endpoint))

        sdp_offer = await self.room.engine.generate_offer(endpoint.id)
        if endpoint.state == State.CLOSED:
            return
        logger.debug("%s SDP offer:\n%s", repr(endpoint), sdp_offer)
        self.set_state(endpoint, State.OFFER_SENT)

        session = self.room.sessions.lookup(endpoint.session_id)
        if session is not None:
            await session.send(protocol.make_offer(endpoint.role.offer_id, endpoint.id, sdp_offer))

    async def peer_ready(self, endpoint: Endpoint) -> None:
        """
        The remote peer is ready, start gathering local candidates.
        """
        if endpoint.gathering or endpoint.state not in [State.OFFER_SENT, State.ANSWER_APPLIED]:
            raise exceptions.ProtocolError(
                "%s cannot start gathering in state %s" % (repr(endpoint), endpoint.state))

        endpoint.gathering = True
        if endpoint.state == State.OFFER_SENT:
            self.set_state(endpoint, State.GATHERING)
        await self.room.engine.gather_candidates(endpoint.id)

    async def process_answer(self, endpoint: Endpoint, sdp_answer: str) -> None:
        if endpoint.state not in [State.OFFER_SENT, State.GATHERING]:
            raise exceptions.ProtocolError(
                "%s cannot process answer in state %s" % (repr(endpoint), endpoint.state))

        logger.debug("%s SDP answer:\n%s", repr(endpoint), sdp_answer)
        endpoint.answering = True
        endpoint.media_connected = False
        try:
            await self.room.engine.process_answer(endpoint.id, sdp_answer)
        finally:
            endpoint.answering = False
        if endpoint.state != State.CLOSED:
            self.set_state(endpoint, State.ANSWER_APPLIED)
            if endpoint.media_connected:
                self._connected(endpoint)

    async def add_remote_candidate(self, endpoint: Endpoint, candidate: IceCandidate) -> None:
        if endpoint.state in [State.CREATED, State.CLOSED]:
            raise exceptions.ProtocolError(
                "%s cannot add candidate in state %s" % (repr(endpoint), endpoint.state))

        logger.debug("%s remote candidate %s", repr(endpoint), repr(candidate))
        await self.room.engine.add_ice_candidate(endpoint.id, candidate)

    async def handle_event(self, endpoint: Endpoint, event: EngineEvent) -> None:
        """
        Handle a notification from the media engine.
        """
        if endpoint.state == State.CLOSED:
            return

        if isinstance(event, CandidateFound):
            if not endpoint.gathering:
                self.__log_info("%s Skip, candidate found before gathering", repr(endpoint))
                return
            logger.debug("%s local candidate %s", repr(endpoint), repr(event.candidate))
            session = self.room.sessions.lookup(endpoint.session_id)
            if session is not None:
                await session.send(protocol.make_candidate(endpoint.id, event.candidate))
        elif isinstance(event, GatheringDone):
            self.__log_info("%s ICE gathering done", repr(endpoint))
        elif isinstance(event, FlowStateChanged):
            self.__log_info("%s media flow %s %s: %s", repr(endpoint),
                            "out" if event.outgoing else "in", event.media_type, event.state)
        elif isinstance(event, EndpointNotice):
            self.__log_info("%s %s: %s", repr(endpoint), event.event_type, event.data)
        elif isinstance(event, MediaStateChanged):
            if event.new_state == "CONNECTED" and endpoint.state == State.ANSWER_APPLIED:
                self._connected(endpoint)
            elif endpoint.answering:
                endpoint.media_connected = event.new_state == "CONNECTED"
        elif isinstance(event, EndpointError):
            logger.error("%s Error code %s: %s", repr(endpoint), event.code, event.description)
            session = self.room.sessions.lookup(endpoint.session_id)
            if session is not None:
                await session.send_error("[Kurento] %s" % event.description)
                await self.stop(session)
            else:
                async with self.room.topology_lock:
                    await self.close_endpoint(endpoint)

    async def stop(self, session: UserSession) -> None:
        """
        Tear down a session.

        The session's talker is released along with every listener which
        receives from it, then the session's own listeners.
        """
        async with self.room.topology_lock:
            if session.closed:
                return
            if self.room.sessions.lookup(session.id) is session:
                self.room.sessions.remove(session.id)
            session.closed = True

            if session.talker is not None:
                await self.close_endpoint(session.talker, session)
            for listener in list(session.listeners):
                await self.close_endpoint(listener, session)
            self.__log_info("%s left", repr(session))

    async def close_endpoint(self, endpoint: Endpoint,
                             session: Optional[UserSession] = None) -> None:
        """
        Release an endpoint. Closing a talker also closes its listeners.

        The caller must hold the room's topology lock.
        """
        if endpoint.state == State.CLOSED:
            return
        self.set_state(endpoint, State.CLOSED)
        self._cancel_timeout(endpoint)

        self.room.endpoints.remove(endpoint.id)
        if session is None:
            session = self.room.sessions.lookup(endpoint.session_id)
        if session is not None:
            session.remove_endpoint(endpoint)

        try:
            await self.room.engine.release(endpoint.id)
        except exceptions.EngineError as exc:
            logger.warning("%s release failed: %s", repr(endpoint), exc)
        finally:
            self.room.engine.close_events(endpoint.id)

        if endpoint.role == Role.TALKER:
            for listener in self.room.endpoints.listeners_of(endpoint.id):
                await self.close_endpoint(listener)

    def set_state(self, endpoint: Endpoint, state: State) -> None:
        self.__log_info("%s %s -> %s", repr(endpoint), endpoint.state, state)
        endpoint.state = state

    # private

    def _cancel_timeout(self, endpoint: Endpoint) -> None:
        if endpoint.timeout_handle is not None:
            endpoint.timeout_handle.cancel()
            endpoint.timeout_handle = None

    def _connected(self, endpoint: Endpoint) -> None:
        self._cancel_timeout(endpoint)
        self.set_state(endpoint, State.CONNECTED)

    def _negotiation_expired(self, endpoint: Endpoint) -> None:
        endpoint.timeout_handle = None
        if endpoint.state not in [State.CONNECTED, State.CLOSED]:
            asyncio.ensure_future(self.expire(endpoint))

    async def expire(self, endpoint: Endpoint) -> None:
        """
        Give up on an endpoint which did not connect in time.
        """
        async with self.room.topology_lock:
            if endpoint.state in [State.CONNECTED, State.CLOSED]:
                return
            self.__log_info("%s negotiation timed out in state %s", repr(endpoint), endpoint.state)
            session = self.room.sessions.lookup(endpoint.session_id)
            await self.close_endpoint(endpoint)
            if session is not None:
                await session.send_error("Negotiation timed out, webRtcEpId: %s" % endpoint.id)

    async def _pump(self, endpoint: Endpoint) -> None:
        while True:
            event = await self.room.engine.get_event(endpoint.id)
            if event is None:
                break
            try:
                await self.handle_event(endpoint, event)
            except exceptions.EngineError as exc:
                logger.error("%s failed to handle %s: %s", repr(endpoint), event, exc)
            except Exception:
                logger.exception("%s failed to handle %s", repr(endpoint), event)

    def __log_info(self, msg: str, *args: Any) -> None:
        logger.info(repr(self.room) + " " + msg, *args)
