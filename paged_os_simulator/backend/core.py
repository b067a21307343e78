"""
Core data structures for the paged OS simulator.
Includes the Process record, the arrival/ready queues and the statistics log.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Deque, Dict, Iterable, Iterator, List, Optional
import math

import numpy as np

from .errors import ConfigurationError


THROUGHPUT_WINDOW = 60


class ProcessState(Enum):
    """Process states in the system."""
    NEW = "NEW"
    READY = "READY"
    RUNNING = "RUNNING"
    TERMINATED = "TERMINATED"


class SchedulingPolicy(Enum):
    """CPU scheduling policies."""
    FCFS = "fcfs"
    ROUND_ROBIN = "round_robin"
    CUSTOM = "custom"  # shortest job first

    @classmethod
    def parse(cls, name: str) -> "SchedulingPolicy":
        key = str(name).strip().lower()
        if key in _SCHEDULING_ALIASES:
            return _SCHEDULING_ALIASES[key]
        raise ConfigurationError(f"unknown scheduling policy: {name!r}")


class MemoryPolicy(Enum):
    """Memory allocation policies."""
    UNLIMITED = "unlimited"
    SWAP = "swap"
    VIRTUAL = "virtual"
    SECOND_CHANCE = "custom"

    @classmethod
    def parse(cls, name: str) -> "MemoryPolicy":
        key = str(name).strip().lower()
        if key in _MEMORY_ALIASES:
            return _MEMORY_ALIASES[key]
        raise ConfigurationError(f"unknown memory policy: {name!r}")

    @property
    def is_bounded(self) -> bool:
        return self is not MemoryPolicy.UNLIMITED


_SCHEDULING_ALIASES: Dict[str, SchedulingPolicy] = {
    "fcfs": SchedulingPolicy.FCFS,
    "ff": SchedulingPolicy.FCFS,
    "round_robin": SchedulingPolicy.ROUND_ROBIN,
    "rr": SchedulingPolicy.ROUND_ROBIN,
    "custom": SchedulingPolicy.CUSTOM,
    "cs": SchedulingPolicy.CUSTOM,
}

_MEMORY_ALIASES: Dict[str, MemoryPolicy] = {
    "unlimited": MemoryPolicy.UNLIMITED,
    "u": MemoryPolicy.UNLIMITED,
    "swap": MemoryPolicy.SWAP,
    "p": MemoryPolicy.SWAP,
    "virtual": MemoryPolicy.VIRTUAL,
    "v": MemoryPolicy.VIRTUAL,
    "custom": MemoryPolicy.SECOND_CHANCE,
    "cm": MemoryPolicy.SECOND_CHANCE,
}


@dataclass
class Process:
    """A simulated process.

    ``pid``, ``arrival_time``, ``memory_required`` (KB) and ``job_time`` (seconds)
    never change; everything else is simulation state.
    """
    pid: int
    arrival_time: int
    memory_required: int
    job_time: int
    time_remaining: int = None
    time_last_used: Optional[int] = None
    time_finished: Optional[int] = None
    load_penalty_remaining: int = 0
    memory_addresses: List[int] = field(default_factory=list)
    page_faults: int = 0
    state: ProcessState = ProcessState.NEW

    def __post_init__(self):
        self.time_remaining = self.job_time if self.time_remaining is None else self.time_remaining

    @property
    def turnaround(self) -> Optional[int]:
        if self.time_finished is None:
            return None
        return self.time_finished - self.arrival_time

    @property
    def overhead(self) -> Optional[float]:
        if self.time_finished is None:
            return None
        return self.turnaround / self.job_time


@dataclass(frozen=True)
class RunOutcome:
    """Result of giving the head of the ready queue one second."""
    finished: bool = False
    cpu_used: bool = False


class ArrivalQueue:
    """Processes that have not arrived yet, ordered by arrival time then PID."""

    def __init__(self, processes: Iterable[Process] = ()):
        self._items: Deque[Process] = deque(
            sorted(processes, key=lambda p: (p.arrival_time, p.pid))
        )

    def has_due(self, now: int) -> bool:
        return bool(self._items) and self._items[0].arrival_time <= now

    def pop_due(self, now: int) -> List[Process]:
        """Remove and return every process that has arrived by ``now``."""
        due: List[Process] = []
        while self.has_due(now):
            due.append(self._items.popleft())
        return due

    def peek_time(self) -> Optional[int]:
        return self._items[0].arrival_time if self._items else None

    def is_empty(self) -> bool:
        return len(self._items) == 0

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Process]:
        return iter(self._items)


class ReadyQueue:
    """Admitted, unfinished processes. The head is the one holding the CPU."""

    def __init__(self):
        self._items: Deque[Process] = deque()
        self._pid_map: Dict[int, Process] = {}

    def push(self, process: Process) -> None:
        """Insert a process ordered by arrival time, then PID.

        The scan starts at the tail, so entries moved around by rotation or
        reordering keep their place.
        """
        if process.pid in self._pid_map:
            raise ValueError(f"process {process.pid} is already queued")

        key = (process.arrival_time, process.pid)
        idx = len(self._items)
        while idx > 0:
            prev = self._items[idx - 1]
            if (prev.arrival_time, prev.pid) <= key:
                break
            idx -= 1
        self._items.insert(idx, process)
        self._pid_map[process.pid] = process
        process.state = ProcessState.READY

    def admit_due(self, arrivals: ArrivalQueue, now: int) -> List[Process]:
        """Move every process due at ``now`` from ``arrivals`` into this queue."""
        admitted = arrivals.pop_due(now)
        for process in admitted:
            self.push(process)
        return admitted

    @property
    def head(self) -> Optional[Process]:
        return self._items[0] if self._items else None

    def pop_head(self) -> Optional[Process]:
        if not self._items:
            return None
        process = self._items.popleft()
        del self._pid_map[process.pid]
        return process

    def run_head(self, tick: int) -> RunOutcome:
        """Give the head one simulated second.

        A pending load penalty is paid off first; CPU time is only consumed
        once the process is fully loaded.
        """
        process = self.head
        if process is None:
            return RunOutcome()

        if process.load_penalty_remaining > 0:
            process.load_penalty_remaining -= 1
            return RunOutcome()

        process.state = ProcessState.RUNNING
        process.time_remaining -= 1
        process.time_last_used = tick
        return RunOutcome(finished=process.time_remaining <= 0, cpu_used=True)

    def rotate(self) -> None:
        """Move the head to the tail (round robin)."""
        if len(self._items) > 1:
            head = self._items.popleft()
            if head.state is ProcessState.RUNNING:
                head.state = ProcessState.READY
            self._items.append(head)

    def promote_shortest_job(self) -> None:
        """Move the entry with the smallest total job time to the head."""
        if len(self._items) < 2:
            return
        best_idx = 0
        for idx, process in enumerate(self._items):
            if process.job_time < self._items[best_idx].job_time:
                best_idx = idx
        if best_idx:
            process = self._items[best_idx]
            del self._items[best_idx]
            self._items.appendleft(process)

    def is_empty(self) -> bool:
        return len(self._items) == 0

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Process]:
        return iter(self._items)


@dataclass(frozen=True)
class ThroughputStats:
    average: int
    minimum: int
    maximum: int


@dataclass(frozen=True)
class OverheadStats:
    maximum: float
    average: float


class StatisticsLog:
    """Append-only record of finished processes."""

    def __init__(self):
        self.finished: List[Process] = []
        self.n_finished = 0

    def record(self, process: Process) -> None:
        """Record a finished process."""
        if process.time_finished is None:
            raise ValueError(f"process {process.pid} has no finish time")
        process.state = ProcessState.TERMINATED
        self.finished.append(process)
        self.n_finished += 1

    @property
    def makespan(self) -> int:
        return max((p.time_finished for p in self.finished), default=0)

    def turnaround(self) -> int:
        """Average turnaround time, rounded up."""
        if not self.finished:
            return 0
        total = sum(p.turnaround for p in self.finished)
        return math.ceil(total / self.n_finished)

    def throughput(self, makespan: Optional[int] = None) -> ThroughputStats:
        """Finished processes per 60-second window of ``[0, makespan)``."""
        makespan = self.makespan if makespan is None else makespan
        n_windows = math.ceil(makespan / THROUGHPUT_WINDOW)
        if n_windows <= 0 or not self.finished:
            return ThroughputStats(0, 0, 0)

        windows = [max(0, (p.time_finished - 1) // THROUGHPUT_WINDOW) for p in self.finished]
        counts = np.bincount(np.array(windows, dtype=int), minlength=n_windows)
        return ThroughputStats(
            average=math.ceil(int(counts.sum()) / len(counts)),
            minimum=int(counts.min()),
            maximum=int(counts.max()),
        )

    def overhead(self) -> OverheadStats:
        """Maximum and average of turnaround / job time, to 2 decimals."""
        if not self.finished:
            return OverheadStats(0.0, 0.0)
        ratios = [p.overhead for p in self.finished]
        return OverheadStats(
            maximum=round(max(ratios), 2),
            average=round(sum(ratios) / len(ratios), 2),
        )
