"""The message broker: accepts streams and routes them to topics."""

import argparse
import asyncio
import ipaddress
import logging
from typing import Any

from selium.bistream import BiStream
from selium.protocol import ProtocolError, RegisterPublisher
from selium.server.tls import (
    ConfigOptions,
    generate_self_signed_cert,
    read_certs,
    server_config,
)
from selium.server.topic import Socket, Topic

__all__ = ["parse_args", "handle_stream", "run_server", "main"]

log = logging.getLogger(__name__)

_U32_MAX = 2**32 - 1
_TOPIC_TASKS: set[asyncio.Task] = set()
_LEVELS = [logging.CRITICAL + 10, logging.ERROR, logging.WARNING, logging.INFO, logging.DEBUG]


def _socket_addr(text: str) -> tuple[str, int]:
    host, sep, port_text = text.rpartition(":")
    host = host.strip("[]")
    try:
        ipaddress.ip_address(host)
        port = int(port_text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid socket address {text!r}") from None
    if not sep or not 0 <= port <= 65535:
        raise argparse.ArgumentTypeError(f"invalid socket address {text!r}")
    return host, port


def _u32(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer {text!r}") from None
    if not 0 <= value <= _U32_MAX:
        raise argparse.ArgumentTypeError(f"{value} is not in 0..={_U32_MAX}")
    return value


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse the server's command line."""
    parser = argparse.ArgumentParser(prog="selium-server", description="Selium message broker")
    parser.add_argument("-a", "--bind-addr", required=True, type=_socket_addr,
                        help="Address to bind this server to")
    parser.add_argument("-k", "--key", help="TLS private key")
    parser.add_argument("-c", "--cert", help="TLS certificate")
    parser.add_argument("--self-signed", action="store_true",
                        help="Autogenerate server cert (only for testing!)")
    parser.add_argument("--stateless-retry", action="store_true", help="Enable stateless retries")
    parser.add_argument("--keylog", action="store_true", help="Log TLS keys for debugging")
    parser.add_argument("--max-idle-timeout", type=_u32, default=15000,
                        help="Maximum time in ms a client can idle waiting for data")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Increase logging output")
    parser.add_argument("-q", "--quiet", action="count", default=0,
                        help="Decrease logging output")
    args = parser.parse_args(argv)

    if args.self_signed and args.cert is not None:
        parser.error("--self-signed cannot be used with --cert")
    if (args.cert is None) != (args.key is None):
        parser.error("--cert and --key must be given together")
    if not args.self_signed and args.cert is None:
        parser.error("one of --cert/--key or --self-signed is required")
    return args


def _log_level(args: argparse.Namespace) -> int:
    index = 1 + args.verbose - args.quiet
    return _LEVELS[max(0, min(index, len(_LEVELS) - 1))]


async def _frames(stream: Any):
    try:
        async for frame in stream:
            yield frame
    finally:
        await stream.close()


async def handle_stream(topics: dict, stream: Any) -> None:
    """Read a stream's header and hand the stream to the topic it names.

    Raises :class:`ProtocolError` if the first frame is not a registration.
    """
    frame = await stream.receive()
    if frame is None:
        log.info("Stream closed")
        return
    topic_name = frame.topic()
    if topic_name is None:
        raise ProtocolError("Expected header frame")

    sender = topics.get(topic_name)
    if sender is None:
        topic, sender = Topic.pair()
        task = asyncio.create_task(topic.run())
        _TOPIC_TASKS.add(task)
        task.add_done_callback(_TOPIC_TASKS.discard)
        topics[topic_name] = sender

    if isinstance(frame, RegisterPublisher):
        await sender.send(Socket.stream(_frames(stream)))
    else:
        await sender.send(Socket.sink(stream))


async def run_server(args: argparse.Namespace) -> None:
    """Serve until cancelled."""
    if args.cert is not None:
        certs, key = read_certs(args.cert, args.key)
    else:
        certs, key = generate_self_signed_cert()
    options = ConfigOptions(
        keylog=args.keylog,
        stateless_retry=args.stateless_retry,
        max_idle_timeout=args.max_idle_timeout,
    )
    context = server_config(certs, key, options)
    topics: dict = {}
    timeout = options.max_idle_timeout / 1000 or None

    async def on_stream(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        log.info("connection incoming")
        stream = BiStream(reader, writer)
        try:
            await asyncio.wait_for(handle_stream(topics, stream), timeout)
        except Exception as exc:
            log.error("Request failed: %r", exc)
            await stream.close()

    host, port = args.bind_addr
    server = await asyncio.start_server(on_stream, host, port, ssl=context)
    try:
        async with server:
            await server.serve_forever()
    finally:
        for task in list(_TOPIC_TASKS):
            task.cancel()


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger("selium").setLevel(_log_level(args))
    try:
        asyncio.run(run_server(args))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()