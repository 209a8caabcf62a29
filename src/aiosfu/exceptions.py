from typing import Optional


class ProtocolError(Exception):
    pass


class EngineError(Exception):
    def __init__(self, message: str, code: Optional[int] = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def __str__(self) -> str:
        out = "Media engine request failed"
        if self.code is not None:
            out += " (%d - %s)" % (self.code, self.message)
        else:
            out += " (%s)" % self.message
        return out


class EngineTimeout(EngineError):
    def __init__(self) -> None:
        super().__init__("timed out")

    def __str__(self) -> str:
        return "Media engine request timed out"


class EngineClosed(EngineError):
    def __init__(self) -> None:
        super().__init__("connection closed")

    def __str__(self) -> str:
        return "Media engine connection closed"
