import math
from datetime import timedelta

from selium.bench.options import BenchmarkArgs
from selium.bench.results import BenchmarkResults


def test_calculate_megabytes_and_throughput():
    args = BenchmarkArgs(num_of_messages=1024 * 1024, num_of_streams=1, message_size=1)
    results = BenchmarkResults.calculate(timedelta(seconds=2), args)
    assert results.total_mb_transferred == 1.0
    assert results.avg_throughput == 0.5
    assert results.args is args


def test_zero_duration_gives_infinite_throughput():
    results = BenchmarkResults.calculate(timedelta(0), BenchmarkArgs())
    assert results.avg_throughput == math.inf
    assert results.avg_latency == 0.0


def test_report_layout():
    text = str(BenchmarkResults.calculate(timedelta(seconds=1), BenchmarkArgs()))
    lines = text.split("\n")
    assert lines[1] == "Benchmark Results"
    assert "Number of Messages: 1,000,000" in lines
    assert (
        "| Duration             | Total Transferred    | Avg. Throughput      | Avg. Latency         |"
        in lines
    )
    body = lines[-2]
    assert body.startswith("| ") and body.endswith(" |")
    assert "Secs" in body and "MB/s" in body
    assert text.endswith("\n")