"""Throughput and latency benchmark run against a local broker."""