import argparse
import asyncio
import logging

from .kurento import KMS_URI, RPC_TIMEOUT, KurentoEngine
from .room import NEGOTIATION_TIMEOUT, Room
from .server import SignalingServer


async def run(options: argparse.Namespace) -> None:
    engine = KurentoEngine(uri=options.kms_uri, timeout=options.rpc_timeout)
    await engine.open()

    timeout = options.negotiation_timeout if options.negotiation_timeout > 0 else None
    room = Room(engine, negotiation_timeout=timeout)
    server = SignalingServer(room)
    try:
        async with server.listen(options.host, options.port):
            logging.info("Listening on ws://%s:%d", options.host, options.port)
            await asyncio.Future()
    finally:
        await engine.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="Audio SFU signaling server")
    parser.add_argument("--host", default="0.0.0.0", help="address to listen on")
    parser.add_argument("--port", type=int, default=8443, help="port to listen on")
    parser.add_argument("--kms-uri", default=KMS_URI, help="Kurento Media Server URI")
    parser.add_argument("--rpc-timeout", type=float, default=RPC_TIMEOUT,
                        help="media server request timeout in seconds")
    parser.add_argument("--negotiation-timeout", type=float, default=NEGOTIATION_TIMEOUT,
                        help="endpoint negotiation timeout in seconds, 0 to disable")
    parser.add_argument("-v", "--verbose", action="store_true")
    options = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if options.verbose else logging.INFO)

    asyncio.run(run(options))


if __name__ == "__main__":
    main()
