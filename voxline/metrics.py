"""Prometheus metrics helpers."""

from __future__ import annotations

import logging

from prometheus_client import Counter, Histogram, Summary, start_http_server

LOGGER = logging.getLogger("voxline.metrics")

FILES_COUNTER = Counter(
    "voxline_files_total",
    "Input files handled by the batch pipeline",
    labelnames=("status",),
)

SEGMENTS_COUNTER = Counter(
    "voxline_segments_total",
    "Speech segments handled by the batch pipeline",
    labelnames=("status",),
)

LIVE_CHUNKS_COUNTER = Counter(
    "voxline_live_chunks_total",
    "Live capture chunks handed to the recognizer",
    labelnames=("status",),
)

FILE_DURATION = Summary(
    "voxline_file_processing_seconds",
    "Wall time spent converting, segmenting and transcribing one file",
)

CHUNK_LATENCY = Histogram(
    "voxline_live_chunk_latency_seconds",
    "Recognition latency for one live chunk",
)


def serve_metrics(port: int) -> None:
    start_http_server(port)
    LOGGER.info("Metrics exposed on :%d/metrics", port)
