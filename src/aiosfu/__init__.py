import logging

from .engine import MediaEngine
from .room import Room
from .server import SignalingServer

__all__ = ["MediaEngine", "Room", "SignalingServer"]
__version__ = "0.1.0"

# Set default logging handler to avoid "No handler found" warnings.
logging.getLogger(__name__).addHandler(logging.NullHandler())
