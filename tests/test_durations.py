from datetime import timedelta

import pytest

from selium.durations import to_millis


def test_integer_is_milliseconds():
    assert to_millis(5_000) == 5_000


def test_timedelta_seconds():
    assert to_millis(timedelta(seconds=6)) == 6_000
    assert to_millis(timedelta(seconds=5)) == 5_000


def test_sub_millisecond_part_is_truncated():
    assert to_millis(timedelta(milliseconds=2, microseconds=999)) == 2


@pytest.mark.parametrize("millis", [0, 1, 999, 86_400_000])
def test_timedelta_round_trip(millis):
    assert to_millis(timedelta(milliseconds=millis)) == millis


def test_largest_u64_accepted():
    assert to_millis(2**64 - 1) == 2**64 - 1


def test_too_large_rejected():
    with pytest.raises(ValueError):
        to_millis(2**64)


def test_negative_integer_rejected():
    with pytest.raises(ValueError):
        to_millis(-1)


def test_negative_timedelta_rejected():
    with pytest.raises(ValueError):
        to_millis(timedelta(seconds=-1))


@pytest.mark.parametrize("value", ["5000", 5.0, None, True])
def test_unsupported_types_rejected(value):
    with pytest.raises(TypeError):
        to_millis(value)