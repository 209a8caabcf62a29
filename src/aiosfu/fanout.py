import logging

from .room import Room
from .session import Role, UserSession
from .signaling import SignalingStateMachine

logger = logging.getLogger(__name__)


class FanoutTopologyBuilder:
    """
    Wires a joining participant to every participant already in the room.

    Each participant owns one talker, plus one listener per other
    participant receiving from that participant's talker.
    """
    def __init__(self, room: Room, signaling: SignalingStateMachine) -> None:
        self.room = room
        self.signaling = signaling

    async def join(self, session: UserSession) -> None:
        """
        Add `session` to the room.

        This returns once every new endpoint has sent its offer, without
        waiting for the negotiations to complete. Endpoints created before
        a failure are kept.
        """
        async with self.room.topology_lock:
            if session.closed:
                logger.warning("%s Skip, session has left", repr(session))
                return
            if session.joined or session.id in self.room.sessions:
                logger.warning("%s Skip, user already exists", repr(session))
                return

            await self.room.get_pipeline()
            logger.info("%s New user %s", repr(self.room), session.id)
            self.room.sessions.register(session.id, session)
            session.joined = True

            talker = await self.signaling.create_endpoint(session, Role.TALKER)
            await self.signaling.negotiate(talker)

            async def connect_peer(other: UserSession) -> None:
                if other is session:
                    return
                await self.connect_pair(session, other)

            await self.room.sessions.for_each_session(connect_peer)

    async def connect_pair(self, session: UserSession, other: UserSession) -> None:
        """
        Create the two listeners linking `session` and `other`.
        """
        engine = self.room.engine
        talker = session.talker

        # the other participant hears the joining one
        if talker is not None:
            listener = await self.signaling.create_endpoint(other, Role.LISTENER, source=talker)
            await engine.connect(talker.id, listener.id)
            await self.signaling.negotiate(listener)

        # the joining participant hears the other one
        other_talker = other.talker
        if other_talker is not None:
            listener = await self.signaling.create_endpoint(
                session, Role.LISTENER, source=other_talker)
            await engine.connect(other_talker.id, listener.id)
            await self.signaling.negotiate(listener)
        else:
            logger.info("%s Skip, %s has no talker", repr(self.room), repr(other))
