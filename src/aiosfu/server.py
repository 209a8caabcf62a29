import logging
from typing import Optional

from websockets.asyncio.server import ServerConnection, serve
from websockets.exceptions import ConnectionClosed

from .room import Room
from .router import MessageRouter
from .session import UserSession
from .utils import random_session_id

logger = logging.getLogger(__name__)


class SignalingServer:
    """
    A WebSocket server accepting one connection per participant.
    """
    def __init__(self, room: Room, router: Optional[MessageRouter] = None) -> None:
        self.room = room
        self.router = router or MessageRouter(room)

    async def handler(self, websocket: ServerConnection) -> None:
        session = UserSession(random_session_id(), websocket)
        logger.info("New WebSocket connection, session: %s", session.id)

        try:
            async for data in websocket:
                await self.router.handle_message(session, data)
        except ConnectionClosed as exc:
            logger.warning("%s Transport error: %s", repr(session), exc)
        finally:
            await self.router.signaling.stop(session)
            logger.info("Closed WebSocket connection, session: %s", session.id)

    def listen(self, host: str, port: int) -> serve:
        """
        Return a server listening on `host` and `port`.

        The result can be used as an asynchronous context manager.
        """
        return serve(self.handler, host, port)

