"""Benchmark results and their report."""

import math
from dataclasses import dataclass
from datetime import timedelta

from selium.bench.options import BenchmarkArgs

__all__ = ["BenchmarkResults"]

_MICROSECOND = timedelta(microseconds=1)


def _div(a: float, b: float) -> float:
    if b:
        return a / b
    if a == 0 or math.isnan(a):
        return math.nan
    return math.copysign(math.inf, a)


@dataclass
class BenchmarkResults:
    duration: timedelta
    args: BenchmarkArgs
    total_mb_transferred: float
    avg_throughput: float
    avg_latency: float

    @classmethod
    def calculate(cls, duration: timedelta, args: BenchmarkArgs) -> "BenchmarkResults":
        total_bytes = args.num_of_messages * args.message_size
        total_mb = total_bytes / 1024.0 / 1024.0
        nanos = (duration // _MICROSECOND) * 1000
        return cls(
            duration=duration,
            args=args,
            total_mb_transferred=total_mb,
            avg_throughput=_div(total_mb, duration.total_seconds()),
            avg_latency=_div(float(nanos), float(args.num_of_messages)),
        )

    def __str__(self) -> str:
        duration = f"{self.duration.total_seconds():.4f} Secs"
        total = f"{self.total_mb_transferred:.2f} MB"
        throughput = f"{self.avg_throughput:.2f} MB/s"
        latency = f"{self.avg_latency:.2f} ns"
        summary = (
            "\nBenchmark Results\n"
            "---------------------\n"
            f"Number of Messages: {self.args.num_of_messages:,}\n"
            f"Number of Streams: {self.args.num_of_streams:,}\n"
            f"Message Size (Bytes): {self.args.message_size:,}"
        )
        header = (
            f"| {'Duration':<20} | {'Total Transferred':<20} | "
            f"{'Avg. Throughput':<20} | {'Avg. Latency':<20} |"
        )
        body = f"| {duration:<20} | {total:<20} | {throughput:<20} | {latency:<20} |"
        return f"{summary}\n\n{header}\n{body}\n"