import json
from typing import Any, Dict

from .candidate import IceCandidate
from .exceptions import ProtocolError

# inbound
START = "START"
WEBRTCPEER_READY = "WEBRTCPEER_READY"
PROCESS_SDP_ANSWER = "PROCESS_SDP_ANSWER"
ADD_ICE_CANDIDATE = "ADD_ICE_CANDIDATE"
STOP = "STOP"
ERROR = "ERROR"

# outbound
MAKE_TALKER = "MAKE_TALKER"
MAKE_LISTENER = "MAKE_LISTENER"


def decode_envelope(data: Any) -> Dict[str, Any]:
    """
    Parse one text envelope into a message dictionary.

    The envelope must be a JSON object carrying a string ``id``.
    """
    if isinstance(data, bytes):
        try:
            data = data.decode("utf8")
        except UnicodeDecodeError:
            raise ProtocolError("Envelope is not valid UTF-8")

    try:
        message = json.loads(data)
    except ValueError:
        raise ProtocolError("Envelope is not valid JSON")

    if not isinstance(message, dict):
        raise ProtocolError("Envelope is not a JSON object")
    if not isinstance(message.get("id"), str):
        raise ProtocolError("Envelope has no message id")
    return message


def encode_envelope(message: Dict[str, Any]) -> str:
    return json.dumps(message)


def require_string(message: Dict[str, Any], name: str) -> str:
    value = message.get(name)
    if not isinstance(value, str):
        raise ProtocolError("Message %s has no %s" % (message["id"], name))
    return value


def require_candidate(message: Dict[str, Any]) -> IceCandidate:
    try:
        return IceCandidate.from_json(message.get("candidate"))
    except ValueError as exc:
        raise ProtocolError("Message %s has a bad candidate: %s" % (message["id"], exc))


def make_offer(message_id: str, endpoint_id: str, sdp_offer: str) -> Dict[str, Any]:
    return {"id": message_id, "webRtcEpId": endpoint_id, "sdpOffer": sdp_offer}


def make_candidate(endpoint_id: str, candidate: IceCandidate) -> Dict[str, Any]:
    return {"id": ADD_ICE_CANDIDATE, "webRtcEpId": endpoint_id, "candidate": candidate.to_json()}


def make_error(text: str) -> Dict[str, Any]:
    return {"id": ERROR, "message": text}
