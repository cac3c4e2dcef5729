import asyncio

import pytest

from selium.bistream import BiStream
from selium.protocol import (
    Message,
    Operation,
    ProtocolError,
    PublisherPayload,
    RegisterPublisher,
)


async def _pair():
    accepted = asyncio.Queue()

    async def on_connect(reader, writer):
        await accepted.put((reader, writer))

    server = await asyncio.start_server(on_connect, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    reader, writer = await asyncio.open_connection("127.0.0.1", port)
    peer_reader, peer_writer = await accepted.get()
    return server, BiStream(reader, writer), BiStream(peer_reader, peer_writer), peer_writer


async def _teardown(server, *streams):
    for stream in streams:
        await stream.close()
    server.close()
    await server.wait_closed()


@pytest.mark.asyncio
async def test_frames_round_trip():
    server, local, remote, _ = await _pair()
    register = RegisterPublisher(
        PublisherPayload("/acmeco/stocks", 5, [Operation.map("first/module.wasm")])
    )
    await local.send(register)
    await local.send(Message(b"Hello world"))
    assert await remote.receive() == register
    assert await remote.receive() == Message(b"Hello world")
    await _teardown(server, local, remote)


@pytest.mark.asyncio
async def test_finish_ends_peer_iteration():
    server, local, remote, _ = await _pair()
    for text in (b"foo", b"bar", b"foo"):
        await local.send(Message(text))
    await local.finish()
    frames = [frame async for frame in remote]
    assert frames == [Message(b"foo"), Message(b"bar"), Message(b"foo")]
    assert await remote.receive() is None
    await _teardown(server, local, remote)


@pytest.mark.asyncio
async def test_send_after_finish_raises():
    server, local, remote, _ = await _pair()
    await local.finish()
    with pytest.raises(RuntimeError):
        await local.send(Message(b"late"))
    await _teardown(server, local, remote)


@pytest.mark.asyncio
async def test_truncated_frame_raises():
    server, local, remote, peer_writer = await _pair()
    peer_writer.write(b"\0\0\0\0\0\0\0\x0b\x02Hello")
    await peer_writer.drain()
    peer_writer.write_eof()
    with pytest.raises(ProtocolError):
        await local.receive()
    await _teardown(server, local, remote)


@pytest.mark.asyncio
async def test_finish_keeps_receiving_side_open():
    server, local, remote, _ = await _pair()
    await local.finish()
    assert await remote.receive() is None
    await remote.send(Message(b"reply"))
    assert await local.receive() == Message(b"reply")
    await _teardown(server, local, remote)