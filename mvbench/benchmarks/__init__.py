from .metrics import BenchmarkResult, aggregate_pass
from .orchestrator import (
    PassOutcome,
    ProcessOrchestrator,
    SpawnError,
    TerminationKind,
    WorkerRun,
    WorkerStatus,
)
from .output_parser import ParsedFile, parse_output_file
from .reporter import render_fastest_table, render_results_table
from .suite import BenchmarkSuite

__all__ = [
    'BenchmarkResult',
    'BenchmarkSuite',
    'ParsedFile',
    'PassOutcome',
    'ProcessOrchestrator',
    'SpawnError',
    'TerminationKind',
    'WorkerRun',
    'WorkerStatus',
    'aggregate_pass',
    'parse_output_file',
    'render_fastest_table',
    'render_results_table',
]
