#!/usr/bin/env python3
"""
Convenience wrapper to run the extractor benchmark from a source checkout.

Usage examples:
    python scripts/run_benchmark.py clip.mp4 4 results/
    python scripts/run_benchmark.py rtsp://camera/stream 10 results/ --sweep
"""

import sys

from mvbench.cli import main


if __name__ == "__main__":
    sys.exit(main())
