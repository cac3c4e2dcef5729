"""Command-line options for the benchmark."""

import argparse
from dataclasses import dataclass

__all__ = ["BenchmarkArgs"]

_U64_MAX = 2**64 - 1


def _u64(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer {text!r}") from None
    if not 0 <= value <= _U64_MAX:
        raise argparse.ArgumentTypeError(f"{value} is out of range")
    return value


@dataclass
class BenchmarkArgs:
    """How many messages, over how many streams, of what size."""

    num_of_messages: int = 1_000_000
    num_of_streams: int = 10
    message_size: int = 32

    @classmethod
    def parse(cls, argv: list[str] | None = None) -> "BenchmarkArgs":
        defaults = cls()
        parser = argparse.ArgumentParser(prog="selium-benchmarks")
        parser.add_argument("--num-of-messages", type=_u64, default=defaults.num_of_messages,
                            help="The number of messages to exchange")
        parser.add_argument("--num-of-streams", type=_u64, default=defaults.num_of_streams,
                            help="The number of streams to use with multiplexing")
        parser.add_argument("--message-size", type=_u64, default=defaults.message_size,
                            help="Size (in bytes) of the message payload")
        return cls(**vars(parser.parse_args(argv)))