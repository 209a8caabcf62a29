from typing import Any, Dict, Optional


class IceCandidate:
    """
    An ICE candidate as exchanged on the signaling channel.

    The ``candidate`` attribute holds the SDP ``candidate:`` line, while
    ``sdp_mid`` and ``sdp_mline_index`` identify the media section it
    belongs to.
    """
    def __init__(self, candidate: str, sdp_mid: Optional[str], sdp_mline_index: int) -> None:
        self.candidate = candidate
        self.sdp_mid = sdp_mid
        self.sdp_mline_index = sdp_mline_index

    @classmethod
    def from_json(cls, data: Any) -> "IceCandidate":
        """
        Parse an :class:`IceCandidate` from its JSON form.

        .. code-block:: python

           IceCandidate.from_json({
               'candidate': 'candidate:6815297761 1 udp 659136 1.2.3.4 31102 typ host',
               'sdpMid': '0',
               'sdpMLineIndex': 0,
           })
        """
        if not isinstance(data, dict):
            raise ValueError("ICE candidate is not an object")

        candidate = data.get("candidate")
        if not isinstance(candidate, str):
            raise ValueError("ICE candidate has no candidate line")

        sdp_mid = data.get("sdpMid")
        if sdp_mid is not None and not isinstance(sdp_mid, str):
            raise ValueError("ICE candidate has an invalid sdpMid")

        sdp_mline_index = data.get("sdpMLineIndex")
        if isinstance(sdp_mline_index, bool) or not isinstance(sdp_mline_index, int):
            raise ValueError("ICE candidate has an invalid sdpMLineIndex")

        # an empty line signals the end of candidates
        if candidate and len(strip_prefix(candidate).split()) < 8:
            raise ValueError("ICE candidate does not have enough properties")

        return cls(candidate=candidate, sdp_mid=sdp_mid, sdp_mline_index=sdp_mline_index)

    def to_json(self) -> Dict[str, Any]:
        """
        Return a representation suitable for a signaling envelope.
        """
        return {
            "candidate": self.candidate,
            "sdpMid": self.sdp_mid,
            "sdpMLineIndex": self.sdp_mline_index,
        }

    @property
    def type(self) -> Optional[str]:
        bits = strip_prefix(self.candidate).split()
        if len(bits) < 8:
            return None
        return bits[7]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, IceCandidate):
            return NotImplemented
        return self.to_json() == other.to_json()

    def __repr__(self) -> str:
        return "IceCandidate(%s)" % strip_prefix(self.candidate)


def strip_prefix(line: str) -> str:
    if line.startswith("candidate:"):
        return line[10:]
    return line
