"""Parallel benchmark harness for motion-vector extractor programs."""

__version__ = "0.1.0"
