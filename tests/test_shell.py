"""Tests for ReportRunner using a stand-in generator script."""

from __future__ import annotations

import sys
import textwrap
import threading
import time
from pathlib import Path
from typing import List

import pytest

from sonarad import shell
from sonarad.shell import ReportRunner

GENERATOR = textwrap.dedent(
    """
    import argparse, sys, time

    parser = argparse.ArgumentParser()
    parser.add_argument("--mode", default="ok")
    parser.add_argument("--output")
    parser.add_argument("--show-domain", action="store_true")
    args = parser.parse_args()

    if args.show_domain:
        if args.mode == "fail":
            print("cannot bind", file=sys.stderr)
            sys.exit(1)
        print("corp.example.com")
        sys.exit(0)

    for i in range(1, 4):
        print(f"line {i}", flush=True)
    print("warning on stderr", file=sys.stderr, flush=True)

    if args.mode == "sleep":
        time.sleep(30)
    if args.mode == "fail":
        print("mandatory query failed", file=sys.stderr)
        sys.exit(1)
    if args.mode != "no-file":
        with open(args.output, "w", encoding="utf-8") as f:
            f.write("<html></html>")
    """
)


@pytest.fixture
def generator(tmp_path: Path) -> List[str]:
    script = tmp_path / "fake_generator.py"
    script.write_text(GENERATOR, encoding="utf-8")
    return [sys.executable, "-u", str(script)]


def make_runner(generator, tmp_path, mode="ok", timeout=20.0) -> ReportRunner:
    return ReportRunner(command=generator, generator_args=["--mode", mode],
                        working_dir=str(tmp_path), timeout=timeout, domain_timeout=20.0)


def test_successful_generation_streams_in_order(generator, tmp_path) -> None:
    lines: List[str] = []
    result = make_runner(generator, tmp_path).generate_report(on_output=lines.append)

    assert result.success is True
    assert result.kind == shell.KIND_OK
    assert result.report_path == str(tmp_path / "ADMetricsReport.html")
    assert Path(result.report_path).is_file()
    stdout_lines = [line for line in lines if line.startswith("line")]
    assert stdout_lines == ["line 1", "line 2", "line 3"]
    assert "warning on stderr" in lines
    assert "line 2" in result.output


def test_non_zero_exit_is_failure(generator, tmp_path) -> None:
    result = make_runner(generator, tmp_path, mode="fail").generate_report()

    assert result.success is False
    assert result.kind == shell.KIND_FAILED
    assert result.exit_code == 1
    assert "mandatory query failed" in result.output


def test_missing_report_file(generator, tmp_path) -> None:
    result = make_runner(generator, tmp_path, mode="no-file").generate_report()
    assert result.kind == shell.KIND_MISSING_REPORT
    assert result.success is False


def test_timeout_kills_generation(generator, tmp_path) -> None:
    start = time.monotonic()
    result = make_runner(generator, tmp_path, mode="sleep", timeout=1.0).generate_report()

    assert result.kind == shell.KIND_TIMEOUT
    assert result.success is False
    assert time.monotonic() - start < 15


def test_second_generation_is_rejected_then_cancel(generator, tmp_path) -> None:
    runner = make_runner(generator, tmp_path, mode="sleep")
    results = []
    worker = threading.Thread(target=lambda: results.append(runner.generate_report()))
    worker.start()

    deadline = time.monotonic() + 10
    while runner._process is None and time.monotonic() < deadline:
        time.sleep(0.05)
    assert runner.busy

    second = runner.generate_report()
    assert second.kind == shell.KIND_BUSY

    assert runner.cancel() is True
    worker.join(timeout=15)
    assert results[0].kind == shell.KIND_CANCELLED
    assert not runner.busy


def test_cancel_without_generation(generator, tmp_path) -> None:
    assert make_runner(generator, tmp_path).cancel() is False


def test_spawn_error(tmp_path) -> None:
    runner = ReportRunner(command=[str(tmp_path / "does-not-exist")], working_dir=str(tmp_path))
    result = runner.generate_report()
    assert result.kind == shell.KIND_SPAWN_ERROR


def test_get_domain(generator, tmp_path) -> None:
    assert make_runner(generator, tmp_path).get_domain() == {"success": True, "domain": "corp.example.com"}


def test_get_domain_failure(generator, tmp_path) -> None:
    result = make_runner(generator, tmp_path, mode="fail").get_domain()
    assert result["success"] is False
    assert "cannot bind" in result["error"]


def test_open_report_missing_file(tmp_path) -> None:
    result = ReportRunner.open_report(str(tmp_path / "nope.html"))
    assert result == {"success": False, "error": "Report file not found"}


def test_open_report_uses_browser(tmp_path, monkeypatch) -> None:
    report = tmp_path / "r.html"
    report.write_text("<html></html>", encoding="utf-8")
    opened = []
    monkeypatch.setattr(shell.webbrowser, "open", lambda url: opened.append(url) or True)

    assert ReportRunner.open_report(str(report)) == {"success": True}
    assert opened == [report.resolve().as_uri()]
