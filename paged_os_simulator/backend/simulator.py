from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, List, Optional, Union

from .core import (
    ArrivalQueue, MemoryPolicy, OverheadStats, Process, ReadyQueue,
    SchedulingPolicy, StatisticsLog, ThroughputStats,
)
from .errors import ConfigurationError, MemoryExhaustedError
from .memory import MIN_RESIDENT_PAGES, PAGE_SIZE_KB, MemoryManager, pages_for
from .schedulers import make_scheduler
from .utils import EventLogger, format_event, format_statistics


class SimulationState(Enum):
    IDLE = "IDLE"            # nothing on the CPU, arrivals pending
    LOADING = "LOADING"      # head is paying its load penalty
    RUNNING = "RUNNING"
    DRAINING = "DRAINING"    # no arrivals left, ready queue non-empty
    DONE = "DONE"


@dataclass
class SimulationConfig:
    scheduling_policy: Union[SchedulingPolicy, str] = SchedulingPolicy.FCFS
    memory_policy: Union[MemoryPolicy, str] = MemoryPolicy.UNLIMITED
    memory_size_kb: Optional[int] = None
    quantum: int = 10

    def __post_init__(self):
        if not isinstance(self.scheduling_policy, SchedulingPolicy):
            self.scheduling_policy = SchedulingPolicy.parse(self.scheduling_policy)
        if not isinstance(self.memory_policy, MemoryPolicy):
            self.memory_policy = MemoryPolicy.parse(self.memory_policy)

        if self.scheduling_policy is SchedulingPolicy.ROUND_ROBIN and (
                not isinstance(self.quantum, int) or self.quantum <= 0):
            raise ConfigurationError(f"round robin needs a positive integer quantum, got {self.quantum!r}")

        if self.memory_policy.is_bounded:
            if self.memory_size_kb is None:
                raise ConfigurationError(f"memory policy {self.memory_policy.value!r} needs a memory size")
            if not isinstance(self.memory_size_kb, int) or self.memory_size_kb <= 0:
                raise ConfigurationError(f"memory size must be a positive integer, got {self.memory_size_kb!r}")
            if self.memory_size_kb % PAGE_SIZE_KB:
                raise ConfigurationError(
                    f"memory size must be a multiple of {PAGE_SIZE_KB} KB, got {self.memory_size_kb}"
                )


@dataclass
class SimulationResult:
    processes: List[Process]
    makespan: int
    turnaround: int
    throughput: ThroughputStats
    overhead: OverheadStats
    log: StatisticsLog
    logger: EventLogger

    def transcript(self) -> List[str]:
        return self.logger.transcript()

    def statistics_lines(self) -> List[str]:
        return format_statistics(self.log, self.makespan)


class Simulation:
    """Tick-driven scheduler loop.

    Each call to :meth:`step` is one simulated second:

    1. retire the head if it finished last tick and hand the CPU on,
    2. admit arrivals due now,
    3. let round robin rotate an expired head,
    4. give the head one second,
    5. advance the clock.
    """

    def __init__(self, processes: Iterable[Process], config: SimulationConfig | None = None,
                 emit: Optional[Callable[[str], None]] = None):
        self.config = config or SimulationConfig()
        self.processes: List[Process] = list(processes)
        self.arrivals = ArrivalQueue(self.processes)
        self.ready = ReadyQueue()
        self.log = StatisticsLog()
        self.logger = EventLogger()
        self.scheduler = make_scheduler(self.config.scheduling_policy, self.config.quantum)
        self.memory = MemoryManager(
            self.config.memory_size_kb or 0,
            max(1, len(self.processes)),
            self.config.memory_policy,
        )
        self.emit = emit
        self.time = 0
        self.state = SimulationState.IDLE
        self._head_finished = False
        self._check_memory_fits()

    @property
    def bounded_memory(self) -> bool:
        return self.config.memory_policy.is_bounded

    def _check_memory_fits(self) -> None:
        policy = self.config.memory_policy
        if not policy.is_bounded:
            return
        for p in self.processes:
            required = pages_for(p.memory_required)
            if policy is not MemoryPolicy.SWAP:
                required = min(MIN_RESIDENT_PAGES, required)
            if required > self.memory.total_pages:
                raise MemoryExhaustedError(
                    f"process {p.pid} needs {required} pages, memory only has {self.memory.total_pages}"
                )

    # ------------------------------------------------------------------
    # Event output
    # ------------------------------------------------------------------
    def _emit(self, event) -> None:
        if self.emit is not None:
            self.emit(format_event(event))

    def _emit_statistics(self) -> None:
        if self.emit is not None:
            for line in format_statistics(self.log, self.log.makespan):
                self.emit(line)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def _dispatch(self, after_completion: bool = False) -> None:
        """Hand the CPU to the scheduler's pick and make its pages resident."""
        process = self.scheduler.dispatch(self.ready, after_completion=after_completion)
        if process is None:
            return

        result = self.memory.load(process)
        process.load_penalty_remaining = result.penalty
        if result.page_fault:
            process.page_faults += 1
        if result.evicted:
            self._emit(self.logger.log_evicted(self.time, result.evicted))

        if self.bounded_memory:
            process.memory_addresses = self.memory.frames_of(process.pid)
            event = self.logger.log_running(
                self.time, process,
                load_time=result.penalty,
                mem_usage=self.memory.usage,
                mem_addresses=process.memory_addresses,
            )
            self.logger.log_memory_usage(self.time, self.memory.usage)
        else:
            event = self.logger.log_running(self.time, process)
        self._emit(event)

    def _retire_head(self) -> None:
        process = self.ready.pop_head()
        process.time_finished = self.time

        if self.bounded_memory:
            freed = self.memory.evict_all(process.pid)
            if freed:
                self._emit(self.logger.log_evicted(self.time, freed))
            self.logger.log_memory_usage(self.time, self.memory.usage)
        process.memory_addresses = []

        self.log.record(process)
        self._emit(self.logger.log_finished(self.time, process.pid, len(self.ready)))

    def _update_state(self) -> None:
        head = self.ready.head
        if head is None:
            self.state = SimulationState.IDLE
        elif head.load_penalty_remaining > 0:
            self.state = SimulationState.LOADING
        elif self.arrivals.is_empty():
            self.state = SimulationState.DRAINING
        else:
            self.state = SimulationState.RUNNING

    def _finish(self) -> None:
        self.state = SimulationState.DONE
        self._emit_statistics()

    def step(self) -> SimulationState:
        """Advance the simulation by one second."""
        if self.state is SimulationState.DONE:
            return self.state

        if not self._head_finished and self.ready.is_empty() and self.arrivals.is_empty():
            # Nothing was ever submitted
            self._finish()
            return self.state

        # 1. Completion of last tick's head
        if self._head_finished:
            self._head_finished = False
            self._retire_head()
            if self.ready.is_empty() and self.arrivals.is_empty():
                self._finish()
                return self.state
            if not self.ready.is_empty():
                self._dispatch(after_completion=True)

        # 2. Arrivals
        if self.arrivals.has_due(self.time):
            was_empty = self.ready.is_empty()
            self.ready.admit_due(self.arrivals, self.time)
            if was_empty:
                self._dispatch()

        # 3. Quantum expiry
        if self.scheduler.preempt(self.ready):
            self._dispatch()

        # 4. Execute one second
        self._update_state()
        head = self.ready.head
        if head is not None:
            kind = "load" if head.load_penalty_remaining > 0 else "cpu"
            self.logger.log_timeline_slice(self.time, self.time + 1, head.pid, kind)
        outcome = self.ready.run_head(self.time)
        self.scheduler.account(outcome)
        if outcome.cpu_used and self.config.memory_policy is MemoryPolicy.SECOND_CHANCE:
            self.memory.touch(head.pid)
        self._head_finished = outcome.finished

        # 5. Clock
        self.time += 1
        return self.state

    def run(self) -> SimulationResult:
        while self.state is not SimulationState.DONE:
            self.step()
        return self.result()

    def result(self) -> SimulationResult:
        makespan = self.log.makespan
        return SimulationResult(
            processes=self.processes,
            makespan=makespan,
            turnaround=self.log.turnaround(),
            throughput=self.log.throughput(makespan),
            overhead=self.log.overhead(),
            log=self.log,
            logger=self.logger,
        )


def simulate(
    processes: Iterable[Process],
    config: SimulationConfig | None = None,
    emit: Optional[Callable[[str], None]] = None,
) -> SimulationResult:
    """Run ``processes`` to completion and return the collected results."""
    return Simulation(processes, config=config, emit=emit).run()
