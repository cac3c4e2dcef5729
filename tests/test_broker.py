import asyncio
import socket

import pytest
from cryptography.hazmat.primitives import serialization

from selium.client import client
from selium.codecs import StringCodec
from selium.protocol import (
    Message,
    ProtocolError,
    PublisherPayload,
    RegisterPublisher,
    RegisterSubscriber,
    SubscriberPayload,
)
from selium.server.broker import handle_stream, parse_args, run_server
from selium.server.tls import generate_self_signed_cert


class _FakeStream:
    def __init__(self, frames):
        self._frames = list(frames)
        self.sent = []

    async def receive(self):
        return self._frames.pop(0) if self._frames else None

    async def send(self, frame):
        self.sent.append(frame)

    async def close(self):
        pass

    def __aiter__(self):
        return self

    async def __anext__(self):
        frame = await self.receive()
        if frame is None:
            raise StopAsyncIteration
        return frame


def _free_port():
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def cert_files(tmp_path):
    certs, key = generate_self_signed_cert()
    cert_path = tmp_path / "ca.crt"
    key_path = tmp_path / "ca.key"
    cert_path.write_bytes(certs[0].public_bytes(serialization.Encoding.PEM))
    key_path.write_bytes(
        key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        )
    )
    return cert_path, key_path


async def _start_server(cert_path, key_path):
    addr = f"127.0.0.1:{_free_port()}"
    args = parse_args(["--bind-addr", addr, "--cert", str(cert_path), "--key", str(key_path)])
    task = asyncio.create_task(run_server(args))
    builder = client().with_certificate_authority(cert_path)
    for _ in range(100):
        try:
            return task, await builder.connect(addr)
        except OSError:
            await asyncio.sleep(0.05)
    task.cancel()
    raise RuntimeError("server did not start")


def test_parse_args_defaults():
    args = parse_args(["--bind-addr", "127.0.0.1:7001", "--self-signed"])
    assert args.bind_addr == ("127.0.0.1", 7001)
    assert args.max_idle_timeout == 15000
    assert args.stateless_retry is False


@pytest.mark.parametrize(
    "argv",
    [
        ["--bind-addr", "127.0.0.1:7001"],
        ["--bind-addr", "127.0.0.1:7001", "--cert", "a.crt"],
        ["--bind-addr", "127.0.0.1:7001", "--cert", "a.crt", "--key", "a.key", "--self-signed"],
        ["--bind-addr", "localhost", "--self-signed"],
    ],
)
def test_parse_args_rejects(argv):
    with pytest.raises(SystemExit):
        parse_args(argv)


@pytest.mark.asyncio
async def test_handle_stream_rejects_message_header():
    with pytest.raises(ProtocolError):
        await handle_stream({}, _FakeStream([Message(b"x")]))


@pytest.mark.asyncio
async def test_handle_stream_closed_stream_adds_nothing():
    topics = {}
    await handle_stream(topics, _FakeStream([]))
    assert topics == {}


@pytest.mark.asyncio
async def test_handle_stream_routes_publisher_to_subscriber():
    topics = {}
    subscriber = _FakeStream([RegisterSubscriber(SubscriberPayload("t"))])
    publisher = _FakeStream([RegisterPublisher(PublisherPayload("t")), Message(b"hi")])
    await handle_stream(topics, subscriber)
    await handle_stream(topics, publisher)
    for _ in range(200):
        if subscriber.sent:
            break
        await asyncio.sleep(0.01)
    await topics["t"].close()
    assert list(topics) == ["t"]
    assert subscriber.sent == [Message(b"hi")]


@pytest.mark.asyncio
async def test_pub_sub(cert_files):
    task, connection = await _start_server(*cert_files)
    try:
        subscribers = [
            await connection.subscriber(topic).with_decoder(StringCodec()).open()
            for topic in ["/acmeco/stocks", "/acmeco/stocks",
                          "/acmeco/something_else", "/bluthco/stocks"]
        ]
        await asyncio.sleep(0.2)
        publisher = await connection.publisher("/acmeco/stocks").with_encoder(StringCodec()).open()
        await publisher.send_all(["foo", "bar", "foo", "bar", "foo", "bar", "foo"])
        await publisher.finish()

        expected = ["foo", "bar", "foo", "bar", "foo", "bar", "foo"]
        for subscriber in subscribers[:2]:
            received = [await asyncio.wait_for(subscriber.receive(), 5) for _ in range(7)]
            assert received == expected
        for subscriber in subscribers[2:]:
            with pytest.raises(asyncio.TimeoutError):
                await asyncio.wait_for(subscriber.receive(), 0.2)
    finally:
        connection.close()
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)