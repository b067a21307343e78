import pytest

from paged_os_simulator.backend.core import Process, ProcessState, StatisticsLog


def finished(pid, arrival, job_time, time_finished):
    p = Process(pid=pid, arrival_time=arrival, memory_required=0, job_time=job_time)
    p.time_remaining = 0
    p.time_finished = time_finished
    return p


@pytest.fixture
def log():
    return StatisticsLog()


def test_record(log):
    p = finished(1, 0, 5, 5)
    log.record(p)
    assert log.n_finished == 1
    assert log.finished == [p]
    assert p.state is ProcessState.TERMINATED


def test_record_requires_finish_time(log):
    with pytest.raises(ValueError):
        log.record(Process(pid=1, arrival_time=0, memory_required=0, job_time=1))


def test_turnaround_rounds_up(log):
    log.record(finished(1, 0, 5, 5))
    log.record(finished(2, 1, 3, 8))
    assert log.turnaround() == 6


def test_throughput_windows(log):
    for i in range(1, 11):
        log.record(finished(i, 0, 5, 10 * i))
    stats = log.throughput(120)
    # Finishes 10..60 land in the first window, 70..100 in the second
    assert (stats.average, stats.minimum, stats.maximum) == (5, 4, 6)


def test_throughput_window_boundary(log):
    log.record(finished(1, 0, 60, 60))
    log.record(finished(2, 0, 61, 61))
    stats = log.throughput(61)
    assert (stats.average, stats.minimum, stats.maximum) == (1, 1, 1)
    assert log.makespan == 61


def test_throughput_counts_empty_windows(log):
    log.record(finished(1, 0, 5, 5))
    log.record(finished(2, 150, 5, 170))
    stats = log.throughput()
    assert (stats.average, stats.minimum, stats.maximum) == (1, 0, 1)


def test_overhead(log):
    log.record(finished(1, 0, 5, 5))
    log.record(finished(2, 1, 3, 8))
    stats = log.overhead()
    assert stats.maximum == 2.33
    assert stats.average == 1.67


def test_empty_log(log):
    assert log.makespan == 0
    assert log.turnaround() == 0
    assert log.throughput(0).maximum == 0
    assert log.overhead().average == 0.0
