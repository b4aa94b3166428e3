"""Aggregated, report-ready throughput, request and time-to-first-byte statistics."""