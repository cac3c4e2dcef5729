"""Runs the publish/subscribe throughput benchmark against a local server."""

import asyncio
import subprocess
import sys
import time
from datetime import timedelta
from typing import Any

from selium.bench.options import BenchmarkArgs
from selium.bench.results import BenchmarkResults
from selium.client import Client, client
from selium.codecs import StringCodec

__all__ = ["SERVER_ADDR", "BenchmarkRunner", "generate_message", "start_server", "main"]

SERVER_ADDR = "127.0.0.1:7001"
TOPIC = "/acmeco/stocks"
_CONNECT_ATTEMPTS = 100
_CONNECT_DELAY = 0.1


def generate_message(message_size: int) -> str:
    """Return a payload of ``message_size`` letters cycling from 'a' to 'y'."""
    return "".join(chr(i % 25 + 97) for i in range(message_size))


def start_server() -> subprocess.Popen:
    """Start a broker process listening on :data:`SERVER_ADDR`."""
    return subprocess.Popen(
        [
            sys.executable, "-m", "selium.server.broker",
            "--bind-addr", SERVER_ADDR,
            "--cert", "benchmarks/certs/ca.crt",
            "--key", "benchmarks/certs/ca.key",
        ],
        cwd="..",
    )


class BenchmarkRunner:
    """Owns a server process and a client connected to it."""

    def __init__(self, server_handle: Any, connection: Client) -> None:
        self.server_handle = server_handle
        self.connection = connection

    @classmethod
    async def init(cls) -> "BenchmarkRunner":
        handle = start_server()
        try:
            builder = client().with_certificate_authority("certs/ca.crt")
            for attempt in range(_CONNECT_ATTEMPTS):
                try:
                    connection = await builder.connect(SERVER_ADDR)
                    break
                except OSError:
                    if attempt == _CONNECT_ATTEMPTS - 1:
                        raise
                    await asyncio.sleep(_CONNECT_DELAY)
        except BaseException:
            handle.kill()
            raise
        return cls(handle, connection)

    async def run(self, args: BenchmarkArgs) -> BenchmarkResults:
        per_stream = args.num_of_messages // args.num_of_streams
        message = generate_message(args.message_size)
        start = time.perf_counter()

        subscriber = await self.connection.subscriber(TOPIC).with_decoder(StringCodec()).open()

        async def publish(publisher) -> None:
            for _ in range(per_stream):
                await publisher.send(message)
            await publisher.finish()

        async def consume() -> None:
            for _ in range(args.num_of_messages):
                if await subscriber.receive() is None:
                    raise ConnectionError("subscriber stream ended early")

        tasks = []
        for _ in range(args.num_of_streams):
            publisher = await self.connection.publisher(TOPIC).with_encoder(StringCodec()).open()
            tasks.append(asyncio.create_task(publish(publisher)))
        tasks.append(asyncio.create_task(consume()))
        await asyncio.gather(*tasks)

        elapsed = timedelta(seconds=time.perf_counter() - start)
        return BenchmarkResults.calculate(elapsed, args)

    def close(self) -> None:
        """Close the connection and kill the server."""
        self.connection.close()
        self.server_handle.kill()
        self.server_handle.wait()


def main(argv: list[str] | None = None) -> None:
    args = BenchmarkArgs.parse(argv)

    async def _run() -> BenchmarkResults:
        runner = await BenchmarkRunner.init()
        try:
            return await runner.run(args)
        finally:
            runner.close()

    print(asyncio.run(_run()))


if __name__ == "__main__":
    main()