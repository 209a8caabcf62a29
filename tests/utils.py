import asyncio
import functools
import json
import logging
import os
from collections.abc import Callable, Coroutine
from typing import Any, Optional, ParamSpec

from websockets.exceptions import ConnectionClosed

from aiosfu.router import MessageRouter
from aiosfu.session import UserSession

P = ParamSpec("P")


def asynctest(
    coro: Callable[P, Coroutine[None, None, None]],
) -> Callable[P, None]:
    @functools.wraps(coro)
    def wrap(*args: P.args, **kwargs: P.kwargs) -> None:
        asyncio.run(coro(*args, **kwargs))

    return wrap


async def settle(rounds: int = 10) -> None:
    """
    Let pending callbacks and tasks run.
    """
    for i in range(rounds):
        await asyncio.sleep(0)
    await asyncio.sleep(0.01)


class FakeWebSocket:
    def __init__(self) -> None:
        self.closed = False
        self.sent: list[dict[str, Any]] = []

    async def send(self, data: str) -> None:
        if self.closed:
            raise ConnectionClosed(None, None)
        self.sent.append(json.loads(data))

    def messages(self, message_id: Optional[str] = None) -> list[dict[str, Any]]:
        return [m for m in self.sent if message_id is None or m["id"] == message_id]


def create_session(id: str) -> tuple[UserSession, FakeWebSocket]:
    websocket = FakeWebSocket()
    return UserSession(id, websocket), websocket


async def join(router: MessageRouter, id: str) -> tuple[UserSession, FakeWebSocket]:
    session, websocket = create_session(id)
    await router.handle_message(session, json.dumps({"id": "START"}))
    return session, websocket



if os.environ.get("AIOSFU_DEBUG"):
    logging.basicConfig(level=logging.DEBUG)
