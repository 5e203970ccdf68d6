"""Tests for the command-line surface and its exit codes."""

import json
import sys

import pytest

from mvbench import cli
from mvbench.benchmarks.orchestrator import ProcessOrchestrator
from mvbench.utils.resources import WAIT4_AVAILABLE

needs_processes = pytest.mark.skipif(
    not WAIT4_AVAILABLE or sys.platform == "win32",
    reason="needs os.wait4 and /bin/sh",
)


@pytest.fixture
def config_file(tmp_path, bin_dir):
    def write(methods, **harness):
        payload = {
            "harness": dict({"executables_root": str(bin_dir), "quiet_workers": True}, **harness),
            "methods": methods,
        }
        path = tmp_path / "benchmark.json"
        path.write_text(json.dumps(payload))
        return path

    return write


@pytest.fixture
def no_spawn(monkeypatch):
    def refuse(*args, **kwargs):
        raise AssertionError("no worker may be spawned")

    monkeypatch.setattr(ProcessOrchestrator, "run_pass", refuse)


def _method(name, exe, prefix, high_profile=True):
    return {"name": name, "executable": exe, "output_prefix": prefix, "supports_high_profile": high_profile}


@pytest.mark.parametrize("streams", ["0", "101", "abc", "2.5", "+5", "1_0", " 5", "-3"])
def test_invalid_stream_count_is_a_usage_error(streams, no_spawn, capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["clip.mp4", streams])

    assert excinfo.value.code == cli.EXIT_USAGE
    assert "usage:" in capsys.readouterr().err


def test_missing_input_is_a_usage_error(no_spawn) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main([])

    assert excinfo.value.code == cli.EXIT_USAGE


def test_unreadable_config_is_a_usage_error(tmp_path, no_spawn) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["clip.mp4", "--config", str(tmp_path / "missing.json")])

    assert excinfo.value.code == cli.EXIT_USAGE


def test_output_dir_that_is_a_file_is_a_usage_error(tmp_path, config_file, no_spawn) -> None:
    config = config_file([_method("A", "extractor0", "method0_output")])
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("")

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["clip.mp4", "1", str(blocker), "--config", str(config)])

    assert excinfo.value.code == cli.EXIT_USAGE


def test_stream_count_parser_bounds() -> None:
    assert cli.stream_count("1") == 1
    assert cli.stream_count("100") == 100


@needs_processes
def test_full_run_prints_table_and_exits_zero(
    tmp_path, config_file, extractor_factory, ten_frames, capsys
) -> None:
    extractor_factory("extractor0", frames=ten_frames)
    extractor_factory("extractor1", frames=ten_frames)
    config = config_file(
        [
            _method("Original FFmpeg MV extraction", "extractor0", "method0_output"),
            _method("Custom H.264 Parser", "extractor1", "method1_output", high_profile=False),
        ]
    )
    out_dir = tmp_path / "results" / "run1"

    code = cli.main(["clip.mp4", "2", str(out_dir), "--config", str(config)])

    captured = capsys.readouterr()
    assert code == cli.EXIT_OK
    assert "COMPLETE MOTION VECTOR EXTRACTION BENCHMARK" in captured.out
    assert "Streams per Method: 2" in captured.out
    report = captured.out[captured.out.index("COMPLETE MOTION VECTOR"):]
    assert report.index("Original FFmpeg MV extraction") < report.index("Custom H.264 Parser")
    assert sorted(p.name for p in out_dir.iterdir()) == ["method0_output_0.csv", "method1_output_0.csv"]


@needs_processes
def test_cli_overrides_retention_and_frame_constant(
    tmp_path, config_file, extractor_factory, capsys
) -> None:
    extractor_factory("extractor0", frames=[0, 1])
    config = config_file([_method("A", "extractor0", "method0_output")], retention="none")

    code = cli.main(
        ["clip.mp4", "2", str(tmp_path / "out"), "--config", str(config), "--retention", "all", "--frames-per-stream", "10"]
    )

    assert code == cli.EXIT_OK
    row = next(line for line in capsys.readouterr().out.splitlines() if line.startswith("A "))
    assert row.split("|")[6].strip() == "20"
    assert len(list((tmp_path / "out").iterdir())) == 2


@needs_processes
def test_spawn_failure_exits_one_and_keeps_earlier_results(
    tmp_path, config_file, extractor_factory, capsys
) -> None:
    extractor_factory("extractor0", frames=[0])
    config = config_file(
        [
            _method("Works", "extractor0", "method0_output"),
            _method("Missing", "extractor_missing", "method1_output"),
        ]
    )

    code = cli.main(["clip.mp4", "1", str(tmp_path / "out"), "--config", str(config)])

    captured = capsys.readouterr()
    assert code == cli.EXIT_FATAL
    assert "Works" in captured.out[captured.out.index("COMPLETE MOTION VECTOR"):]
    assert "Error: failed to spawn worker 0 for method 'Missing'" in captured.err


@needs_processes
def test_sweep_prints_fastest_table(tmp_path, config_file, extractor_factory, capsys) -> None:
    extractor_factory("extractor0", frames=[0])
    config = config_file([_method("A", "extractor0", "method0_output")])

    code = cli.main(["clip.mp4", "3", str(tmp_path / "out"), "--config", str(config), "--sweep"])

    out = capsys.readouterr().out
    assert code == cli.EXIT_OK
    assert "Streams per Method: 1" in out
    assert "Streams per Method: 3" in out
    assert "FASTEST HIGH PROFILE METHOD PER STREAM COUNT" in out


@needs_processes
def test_output_dir_defaults_to_cwd(tmp_path, config_file, extractor_factory) -> None:
    extractor_factory("extractor0", frames=[0])
    config = config_file([_method("A", "extractor0", "method0_output")])

    assert cli.main(["clip.mp4", "--config", str(config)]) == cli.EXIT_OK
    assert (tmp_path / "method0_output_0.csv").exists()
