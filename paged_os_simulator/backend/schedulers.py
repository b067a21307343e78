"""
Scheduler implementations: FCFS, Round Robin and shortest-job-first.

A scheduler never runs processes itself. It decides which entry of the ready
queue sits at the head when the CPU is handed out, and whether the head has to
give the CPU up.
"""

from abc import ABC, abstractmethod
from typing import Optional

from .core import Process, ReadyQueue, RunOutcome, SchedulingPolicy
from .errors import ConfigurationError


class BaseScheduler(ABC):
    """Abstract base class for all schedulers."""

    policy: SchedulingPolicy

    def __init__(self):
        self.time_quantum: float = float('inf')  # Default to no time slicing
        self.quantum_used = 0

    @abstractmethod
    def select(self, ready_queue: ReadyQueue) -> Optional[Process]:
        """Return the process that gets the CPU next."""
        pass

    def reorder(self, ready_queue: ReadyQueue) -> None:
        """Rearrange the ready queue after the running process finished."""
        pass

    def dispatch(self, ready_queue: ReadyQueue, after_completion: bool = False) -> Optional[Process]:
        """Select the next process and start a fresh quantum for it."""
        if after_completion:
            self.reorder(ready_queue)
        self.quantum_used = 0
        return self.select(ready_queue)

    def account(self, outcome: RunOutcome) -> None:
        """Charge one tick of CPU to the current quantum."""
        if outcome.cpu_used:
            self.quantum_used += 1

    def preempt(self, ready_queue: ReadyQueue) -> bool:
        """Return True if the head was moved off the CPU."""
        return False


class FCFSScheduler(BaseScheduler):
    """First Come First Serve scheduler implementation."""

    policy = SchedulingPolicy.FCFS

    def select(self, ready_queue: ReadyQueue) -> Optional[Process]:
        # Queue is already in arrival order
        return ready_queue.head


class ShortestJobScheduler(BaseScheduler):
    """Non-preemptive shortest job first, keyed on the total job time.

    The queue is only reordered when a process finishes. A dispatch into an
    empty queue keeps arrival order.
    """

    policy = SchedulingPolicy.CUSTOM

    def reorder(self, ready_queue: ReadyQueue) -> None:
        ready_queue.promote_shortest_job()

    def select(self, ready_queue: ReadyQueue) -> Optional[Process]:
        return ready_queue.head


class RoundRobinScheduler(BaseScheduler):
    """Round Robin scheduler implementation."""

    policy = SchedulingPolicy.ROUND_ROBIN

    def __init__(self, time_quantum: int = 10):
        super().__init__()
        if time_quantum <= 0:
            raise ConfigurationError(f"quantum must be positive, got {time_quantum}")
        self.time_quantum = time_quantum

    def select(self, ready_queue: ReadyQueue) -> Optional[Process]:
        return ready_queue.head

    def preempt(self, ready_queue: ReadyQueue) -> bool:
        """Rotate once the head has used a whole quantum of CPU.

        Seconds spent loading pages do not count towards the quantum, and the
        count restarts at every dispatch. Unlimited and bounded memory runs get
        the same number of CPU seconds per quantum.
        """
        head = ready_queue.head
        if head is None or head.load_penalty_remaining > 0:
            return False
        if self.quantum_used < self.time_quantum:
            return False
        ready_queue.rotate()
        return True


def make_scheduler(policy: SchedulingPolicy, time_quantum: int = 10) -> BaseScheduler:
    """Build the scheduler for ``policy``."""
    if policy is SchedulingPolicy.FCFS:
        return FCFSScheduler()
    elif policy is SchedulingPolicy.ROUND_ROBIN:
        return RoundRobinScheduler(time_quantum=time_quantum)
    elif policy is SchedulingPolicy.CUSTOM:
        return ShortestJobScheduler()
    raise ConfigurationError(f"Unknown scheduling policy: {policy}")
