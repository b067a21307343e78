import pandas as pd
import pytest

from paged_os_simulator.scripts.run_simulation import main


@pytest.fixture
def workload(tmp_path):
    path = tmp_path / "processes.txt"
    path.write_text("0 1 0 5\n1 2 0 3\n", encoding="utf-8")
    return str(path)


def test_prints_transcript_and_statistics(workload, capsys):
    assert main(["-f", workload, "-a", "ff", "-m", "u"]) == 0
    out = capsys.readouterr().out.splitlines()
    assert out == [
        "0, RUNNING, id=1, remaining-time=5",
        "5, FINISHED, id=1, proc-remaining=1",
        "5, RUNNING, id=2, remaining-time=3",
        "8, FINISHED, id=2, proc-remaining=0",
        "Throughput 2, 2, 2",
        "Turnaround time 6",
        "Time overhead 2.33 1.67",
        "Makespan 8",
    ]


def test_bounded_memory_run(tmp_path, capsys):
    path = tmp_path / "processes.txt"
    path.write_text("0 1 8 3\n1 2 8 3\n", encoding="utf-8")
    assert main(["-f", str(path), "-a", "rr", "-q", "2", "-m", "p", "-s", "8"]) == 0
    out = capsys.readouterr().out.splitlines()
    assert out[1] == "6, EVICTED, mem-addresses=[0,1]"
    assert out[-1] == "Makespan 22"


def test_missing_file(tmp_path, capsys):
    assert main(["-f", str(tmp_path / "missing.txt"), "-a", "ff", "-m", "u"]) == 1
    assert "cannot read" in capsys.readouterr().err


def test_malformed_file(tmp_path, capsys):
    path = tmp_path / "bad.txt"
    path.write_text("0 1 0\n", encoding="utf-8")
    assert main(["-f", str(path), "-a", "ff", "-m", "u"]) == 1
    assert "line 1" in capsys.readouterr().err


@pytest.mark.parametrize("args", [
    ["-a", "lottery", "-m", "u"],
    ["-a", "ff", "-m", "p"],
    ["-a", "ff", "-m", "v", "-s", "10"],
    ["-a", "rr", "-m", "u", "-q", "0"],
    ["-m", "u"],
    ["-a", "ff"],
    ["-a", "ff", "-m", "u", "-q", "two"],
])
def test_bad_configuration(workload, args, capsys):
    assert main(["-f", workload] + args) == 1
    captured = capsys.readouterr()
    assert "error:" in captured.err
    assert captured.out == ""


def test_process_too_large(tmp_path, capsys):
    path = tmp_path / "big.txt"
    path.write_text("0 1 64 5\n", encoding="utf-8")
    assert main(["-f", str(path), "-a", "ff", "-m", "p", "-s", "16"]) == 2


def test_writes_outputs(workload, tmp_path, capsys):
    report = tmp_path / "report.csv"
    events = tmp_path / "events.json"
    assert main(["-f", workload, "-a", "ff", "-m", "u", "--report", str(report), "--events-json", str(events),
                 "--events-csv", str(tmp_path / "run")]) == 0
    df = pd.read_csv(report)
    assert list(df["pid"]) == [1, 2]
    assert events.exists()
    assert (tmp_path / "run_events.csv").exists()


def test_missing_policy_is_reported(workload, capsys):
    assert main(["-f", workload, "-a", "rr"]) == 1
    err = capsys.readouterr().err
    assert "usage:" in err
    assert "-m/--memory" in err
