import pytest

from selium.bench.options import BenchmarkArgs


def test_defaults():
    assert BenchmarkArgs.parse([]) == BenchmarkArgs(1_000_000, 10, 32)


def test_values_are_parsed():
    args = BenchmarkArgs.parse(
        ["--num-of-messages", "500", "--num-of-streams", "5", "--message-size", "64"]
    )
    assert args == BenchmarkArgs(num_of_messages=500, num_of_streams=5, message_size=64)


@pytest.mark.parametrize("value", ["-1", "abc"])
def test_invalid_values_rejected(value):
    with pytest.raises(SystemExit):
        BenchmarkArgs.parse(["--message-size", value])