import asyncio
import json
import logging
from typing import Any, Dict, Optional

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed

from . import engine, exceptions
from .candidate import IceCandidate

logger = logging.getLogger(__name__)

KMS_URI = "ws://localhost:8888/kurento"
RPC_TIMEOUT = 10

NOTICE_EVENTS = [
    "ConnectionStateChanged",
    "DataChannelClosed",
    "DataChannelOpened",
    "IceComponentStateChanged",
    "MediaTranscodingStateChange",
    "NewCandidatePairSelected",
]

ENDPOINT_EVENTS = [
    "IceCandidateFound",
    "IceGatheringDone",
    "Error",
    "MediaFlowInStateChange",
    "MediaFlowOutStateChange",
    "MediaStateChanged",
] + NOTICE_EVENTS


def parse_event(value: Dict[str, Any]) -> Optional[engine.EngineEvent]:
    """
    Map a Kurento ``onEvent`` notification to an engine event.
    """
    event_type = value.get("type")
    data = value.get("data") or {}
    if event_type == "IceCandidateFound":
        return engine.CandidateFound(candidate=IceCandidate.from_json(data.get("candidate")))
    elif event_type == "IceGatheringDone":
        return engine.GatheringDone()
    elif event_type == "Error":
        return engine.EndpointError(
            description=data.get("description", "unknown error"),
            code=data.get("errorCode"))
    elif event_type == "MediaFlowInStateChange":
        return engine.FlowStateChanged(
            state=data.get("state"), media_type=data.get("mediaType"), outgoing=False)
    elif event_type == "MediaFlowOutStateChange":
        return engine.FlowStateChanged(
            state=data.get("state"), media_type=data.get("mediaType"), outgoing=True)
    elif event_type == "MediaStateChanged":
        return engine.MediaStateChanged(
            old_state=data.get("oldState"), new_state=data.get("newState"))
    elif event_type in NOTICE_EVENTS:
        return engine.EndpointNotice(event_type=event_type, data=data)
    return None


class KurentoEngine(engine.MediaEngine):
    """
    A media engine backed by Kurento Media Server.

    Requests are JSON-RPC 2.0 calls sent over a WebSocket connection to
    the server, and endpoint events arrive as ``onEvent`` notifications on
    the same connection.

    :param uri: The WebSocket URI of the media server.
    :param timeout: How long to wait for each response, in seconds.
    """
    def __init__(self, uri: str = KMS_URI, timeout: float = RPC_TIMEOUT) -> None:
        super().__init__()
        self.uri = uri
        self.timeout = timeout

        self._next_id = 0
        self._reader: Optional[asyncio.Future] = None
        self._session_id: Optional[str] = None
        self._transactions: Dict[int, asyncio.Future] = {}
        self._websocket: Optional[ClientConnection] = None

    async def open(self) -> None:
        """
        Connect to the media server.
        """
        self._websocket = await connect(self.uri)
        self._reader = asyncio.ensure_future(self._read_loop())
        self.__log_info("Connected to %s", self.uri)

    async def close(self) -> None:
        """
        Close the connection to the media server.
        """
        if self._websocket is not None:
            await self._websocket.close()
        if self._reader is not None:
            await self._reader
            self._reader = None

    async def request(self, method: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        Execute a JSON-RPC request and return its result.
        """
        if self._websocket is None:
            raise exceptions.EngineClosed()

        self._next_id += 1
        request_id = self._next_id
        if self._session_id is not None:
            params["sessionId"] = self._session_id
        message = {"jsonrpc": "2.0", "id": request_id, "method": method, "params": params}

        future = asyncio.get_running_loop().create_future()
        self._transactions[request_id] = future
        try:
            logger.debug("%s > %s", repr(self), message)
            await self._websocket.send(json.dumps(message))
            return await asyncio.wait_for(future, self.timeout)
        except asyncio.TimeoutError:
            raise exceptions.EngineTimeout()
        except ConnectionClosed:
            raise exceptions.EngineClosed()
        finally:
            self._transactions.pop(request_id, None)

    # media engine

    async def create_pipeline(self) -> str:
        result = await self.request("create", {
            "type": "MediaPipeline",
            "constructorParams": {},
            "properties": {},
        })
        return result["value"]

    async def create_endpoint(self, pipeline: str, direction: engine.Direction) -> str:
        result = await self.request("create", {
            "type": "WebRtcEndpoint",
            "constructorParams": {
                "mediaPipeline": pipeline,
                direction.value: True,
                "useDataChannels": True,
            },
            "properties": {},
        })
        endpoint_id = result["value"]

        self.open_events(endpoint_id)
        for event_type in ENDPOINT_EVENTS:
            await self.request("subscribe", {"type": event_type, "object": endpoint_id})
        return endpoint_id

    async def generate_offer(self, endpoint_id: str) -> str:
        return await self._invoke(endpoint_id, "generateOffer")

    async def process_answer(self, endpoint_id: str, sdp: str) -> None:
        await self._invoke(endpoint_id, "processAnswer", answer=sdp)

    async def gather_candidates(self, endpoint_id: str) -> None:
        await self._invoke(endpoint_id, "gatherCandidates")

    async def add_ice_candidate(self, endpoint_id: str, candidate: IceCandidate) -> None:
        await self._invoke(endpoint_id, "addIceCandidate", candidate=candidate.to_json())

    async def connect(self, source_id: str, sink_id: str) -> None:
        await self._invoke(source_id, "connect", sink=sink_id)

    async def release(self, endpoint_id: str) -> None:
        self.close_events(endpoint_id)
        await self.request("release", {"object": endpoint_id})

    # private

    async def _invoke(self, object_id: str, operation: str, **params: Any) -> Any:
        result = await self.request("invoke", {
            "object": object_id,
            "operation": operation,
            "operationParams": params,
        })
        return result.get("value")

    async def _read_loop(self) -> None:
        try:
            async for raw in self._websocket:
                self._message_received(raw)
        except ConnectionClosed as exc:
            self.__log_info("Connection lost: %s", exc)
        finally:
            for future in self._transactions.values():
                if not future.done():
                    future.set_exception(exceptions.EngineClosed())
            self._transactions.clear()
            for endpoint_id in list(self._events):
                self.close_events(endpoint_id)
            self._websocket = None

    def _message_received(self, raw: Any) -> None:
        try:
            message = json.loads(raw)
        except ValueError:
            message = None
        if not isinstance(message, dict):
            logger.debug("%s < junk %r", repr(self), raw)
            return
        logger.debug("%s < %s", repr(self), message)

        if message.get("method") == "onEvent":
            self._event_received(message.get("params", {}).get("value", {}))
            return

        future = self._transactions.get(message.get("id"))
        if future is None or future.done():
            return
        if "error" in message:
            error = message["error"]
            if not isinstance(error, dict):
                error = {"message": str(error)}
            future.set_exception(exceptions.EngineError(
                error.get("message", "unknown error"), code=error.get("code")))
        else:
            result = message.get("result") or {}
            if "sessionId" in result:
                self._session_id = result["sessionId"]
            future.set_result(result)

    def _event_received(self, value: Dict[str, Any]) -> None:
        endpoint_id = value.get("object") or (value.get("data") or {}).get("source")
        try:
            event = parse_event(value)
        except ValueError as exc:
            self.__log_info("Skip, bad %s event: %s", value.get("type"), exc)
            return
        if event is not None:
            self.dispatch_event(endpoint_id, event)

    def __log_info(self, msg: str, *args: Any) -> None:
        logger.info(repr(self) + " " + msg, *args)

    def __repr__(self) -> str:
        return "KurentoEngine(%s)" % self.uri
