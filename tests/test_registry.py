import unittest

from aiosfu.registry import EndpointRegistry, SessionRegistry
from aiosfu.session import Endpoint, Role

from .utils import asynctest, create_session


class EndpointRegistryTest(unittest.TestCase):
    def test_register_lookup_remove(self):
        registry = EndpointRegistry()
        endpoint = Endpoint("ep-1", Role.TALKER, "a")

        registry.register("ep-1", endpoint)
        self.assertIn("ep-1", registry)
        self.assertEqual(len(registry), 1)
        self.assertIs(registry.lookup("ep-1"), endpoint)
        self.assertIsNone(registry.lookup("ep-2"))

        self.assertIs(registry.remove("ep-1"), endpoint)
        self.assertNotIn("ep-1", registry)
        self.assertIsNone(registry.remove("ep-1"))

    def test_register_twice(self):
        registry = EndpointRegistry()
        registry.register("ep-1", Endpoint("ep-1", Role.TALKER, "a"))
        with self.assertRaises(ValueError):
            registry.register("ep-1", Endpoint("ep-1", Role.TALKER, "b"))

    def test_listeners_of(self):
        registry = EndpointRegistry()
        talker = Endpoint("ep-1", Role.TALKER, "a")
        listener_b = Endpoint("ep-2", Role.LISTENER, "b", source_id="ep-1")
        listener_c = Endpoint("ep-3", Role.LISTENER, "c", source_id="ep-1")
        other = Endpoint("ep-4", Role.LISTENER, "a", source_id="ep-5")
        for endpoint in [talker, listener_b, listener_c, other]:
            registry.register(endpoint.id, endpoint)

        self.assertEqual(registry.listeners_of("ep-1"), [listener_b, listener_c])
        self.assertEqual(registry.listeners_of("ep-2"), [])


class SessionRegistryTest(unittest.TestCase):
    @asynctest
    async def test_for_each_session(self):
        registry = SessionRegistry()
        sessions = [create_session(id)[0] for id in ["a", "b", "c"]]
        for session in sessions:
            registry.register(session.id, session)

        visited = []

        async def visit(session):
            visited.append(session.id)

        await registry.for_each_session(visit)
        self.assertEqual(visited, ["a", "b", "c"])

    @asynctest
    async def test_for_each_session_skips_removed(self):
        registry = SessionRegistry()
        sessions = [create_session(id)[0] for id in ["a", "b", "c"]]
        for session in sessions:
            registry.register(session.id, session)

        visited = []

        async def visit(session):
            visited.append(session.id)
            # "b" leaves while "a" is being visited
            if session.id == "a":
                registry.remove("b")

        await registry.for_each_session(visit)
        self.assertEqual(visited, ["a", "c"])

    @asynctest
    async def test_for_each_session_skips_closed(self):
        registry = SessionRegistry()
        session_a, _ = create_session("a")
        session_b, _ = create_session("b")
        registry.register("a", session_a)
        registry.register("b", session_b)
        session_b.closed = True

        visited = []

        async def visit(session):
            visited.append(session.id)

        await registry.for_each_session(visit)
        self.assertEqual(visited, ["a"])

    @asynctest
    async def test_for_each_session_allows_registration(self):
        registry = SessionRegistry()
        session_a, _ = create_session("a")
        registry.register("a", session_a)

        visited = []

        async def visit(session):
            visited.append(session.id)
            registry.register("b", create_session("b")[0])

        await registry.for_each_session(visit)
        self.assertEqual(visited, ["a"])
        self.assertEqual(len(registry), 2)
