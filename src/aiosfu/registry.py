from typing import Awaitable, Callable, Dict, Generic, Iterator, List, Optional, TypeVar

from .session import Endpoint, Role, UserSession

T = TypeVar("T")


class Registry(Generic[T]):
    """
    A mapping from identifiers to values shared by all connections.
    """
    def __init__(self) -> None:
        self._items: Dict[str, T] = {}

    def register(self, id: str, value: T) -> None:
        if id in self._items:
            raise ValueError("Identifier %s is already registered" % id)
        self._items[id] = value

    def lookup(self, id: str) -> Optional[T]:
        return self._items.get(id)

    def remove(self, id: str) -> Optional[T]:
        return self._items.pop(id, None)

    def values(self) -> List[T]:
        return list(self._items.values())

    def __contains__(self, id: object) -> bool:
        return id in self._items

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)


class EndpointRegistry(Registry[Endpoint]):
    def listeners_of(self, talker_id: str) -> List[Endpoint]:
        """
        Return the listener endpoints receiving from a talker.
        """
        return [
            endpoint for endpoint in self._items.values()
            if endpoint.role == Role.LISTENER and endpoint.source_id == talker_id
        ]


class SessionRegistry(Registry[UserSession]):
    async def for_each_session(self, visitor: Callable[[UserSession], Awaitable[None]]) -> None:
        """
        Await `visitor` for every registered session.

        Membership is checked again right before each visit, so sessions
        which leave while the iteration is running are skipped.
        """
        for session_id in list(self._items):
            session = self._items.get(session_id)
            if session is None or session.closed:
                continue
            await visitor(session)
