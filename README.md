# selium

A small publish/subscribe message broker together with an asyncio client.

Publishers and subscribers connect to the broker over TLS and register for a
topic. Every message a publisher sends to a topic is copied to each subscriber
registered on that topic at the time the message arrives. The broker never
looks inside message payloads: clients pick a codec that turns their values
into bytes and back.

## Installing

```
pip install selium
```

To run the test suite:

```
pip install "selium[test]"
pytest
```

## Running the broker

```
selium-server --bind-addr 127.0.0.1:7001 --cert certs/ca.crt --key certs/ca.key
```

The same server can be started with `python -m selium.server.broker`.

Options:

- `-a`, `--bind-addr` – IP address and port to listen on, e.g.
  `127.0.0.1:7001` (required)
- `-c`, `--cert` and `-k`, `--key` – TLS certificate chain and private key.
  A `.der` extension reads DER; anything else is read as PEM (PKCS #8 or
  PKCS #1 keys). The two must be given together.
- `--self-signed` – generate a throwaway certificate for `localhost` instead
  of `--cert`/`--key`, and print it; for testing only
- `--keylog` – write TLS keys to the file named by the `SSLKEYLOGFILE`
  environment variable, if it is set
- `--stateless-retry` – accepted for compatibility; has no effect over TCP
- `--max-idle-timeout` – milliseconds a new stream has to send its
  registration frame before it is dropped (default `15000`, `0` for no limit)
- `-v` / `-q` – raise or lower log verbosity; repeat for more

A topic is created the first time a stream names it and lives until the
server stops.

## Publishing

```python
import asyncio

from selium.client import client
from selium.codecs import StringCodec


async def publish():
    connection = await (
        client()
        .keep_alive(5_000)
        .with_certificate_authority("certs/ca.crt")
        .connect("127.0.0.1:7001")
    )

    publisher = await (
        connection.publisher("/acmeco/stocks")
        .with_encoder(StringCodec())
        .open()
    )

    await publisher.send("Hello, world!")
    await publisher.finish()
    connection.close()


asyncio.run(publish())
```

`keep_alive` takes milliseconds as an integer or a `datetime.timedelta`
(default 5 000 ms) and sets the TCP keep-alive interval of the client's
sockets. `with_certificate_authority` loads the PEM certificates used to
verify the server and raises `selium.crypto.CertificateError` if the file
holds none. `connect` checks the address and the TLS handshake straight away.

`await publisher.duplicate()` opens a second publisher with the same topic,
settings and encoder, which is handy when several tasks publish to one topic
concurrently. `send_all` sends every item of an iterable or async iterable in
order. `finish` flushes and closes the stream.

## Subscribing

```python
async def subscribe():
    connection = await (
        client()
        .with_certificate_authority("certs/ca.crt")
        .connect("127.0.0.1:7001")
    )

    subscriber = await (
        connection.subscriber("/acmeco/stocks")
        .with_decoder(StringCodec())
        .open()
    )

    async for message in subscriber:
        print(f'NEW MESSAGE: "{message}"')
```

`await subscriber.receive()` returns one decoded item, or `None` once the
stream has ended.

## Codecs

`selium.codecs` provides:

- `StringCodec` – UTF-8 text payloads.
- `BincodeCodec(type_)` – a compact little-endian binary layout for
  integers, floats, booleans, strings, bytes, lists, tuples, dicts, enums,
  `Optional` values and dataclasses, compatible with bincode's default
  layout. `type_` says what `decode` builds; encoding needs no type.

```python
from dataclasses import dataclass
from selium.codecs import BincodeCodec


@dataclass
class StockEvent:
    ticker: str
    change: float


codec = BincodeCodec(StockEvent)
assert codec.decode(codec.encode(StockEvent("MSFT", 12.75))) == StockEvent("MSFT", 12.75)
```

The layout itself is available as `selium.bincode.serialize`,
`deserialize(data, type_)` and `serialized_size`. Custom codecs subclass
`MessageEncoder` and/or `MessageDecoder` and implement `encode(item) -> bytes`
and `decode(buffer)`.

## Wire protocol

Each frame on a stream is an 8-byte big-endian payload length, a 1-byte frame
type and the payload. `selium.protocol.MessageCodec` encodes frames to bytes
and takes complete frames off the front of a `bytearray`; the frame types are
`RegisterPublisher`, `RegisterSubscriber` (payloads in the bincode layout) and
`Message` (raw bytes). Malformed input raises `selium.protocol.ProtocolError`.
`selium.bistream.BiStream` carries frames over an asyncio reader/writer pair.

## Server building blocks

`selium.server.topic.Topic` forwards items from every publisher stream to a
`selium.server.fanout.FanoutMany`, which copies each item to all its sinks
and evicts any sink that fails. `selium.server.sinks` has the `Sink` base
class and the `MapSink`, `Filter` and `Ordered` adapters (reachable through
`Sink.map`, `Sink.filter` and `Sink.ordered`).

## Benchmarks

```
selium-benchmarks --num-of-messages 1000000 --num-of-streams 10 --message-size 32
```

The benchmark starts a broker on `127.0.0.1:7001` as a child process, in the
parent of the current directory, using `benchmarks/certs/ca.crt` and
`benchmarks/certs/ca.key` there; the client trusts `certs/ca.crt` in the
current directory. It publishes the messages split evenly across the
publisher streams, reads them back through one subscriber, prints the
duration, data transferred, average throughput and average latency per
message, and then stops the broker.

## What it does not do

- Streams run over TLS on TCP; each stream is its own TLS connection rather
  than one multiplexed connection.
- `map`, `filter` and `retain` on the stream builders are recorded in the
  registration headers, but the broker does not apply them: messages are
  neither transformed, filtered nor retained.
- Messages are not stored. A subscriber only receives messages sent after it
  registered.