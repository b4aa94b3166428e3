"""Benchmark operations, time segments, log files, collection and run comparison."""