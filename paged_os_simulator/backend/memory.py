"""
Paged main memory for the simulator.

Memory is a fixed table of 4 KB frames. Each frame is either free (``None``) or
owned by a PID. The manager also keeps the insertion-ordered list of resident
PIDs and a reference bit per frame for the second-chance policy.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Optional
import math

from .core import MemoryPolicy, Process
from .errors import ConfigurationError, MemoryExhaustedError


PAGE_SIZE_KB = 4
LOAD_TIME_PER_PAGE = 2
MIN_RESIDENT_PAGES = 4  # 16 KB


def pages_for(memory_kb: int) -> int:
    """Number of pages needed to hold ``memory_kb``."""
    return math.ceil(memory_kb / PAGE_SIZE_KB)


@dataclass
class LoadResult:
    """What a load policy did for one dispatch."""
    penalty: int = 0
    loaded: List[int] = field(default_factory=list)
    evicted: List[int] = field(default_factory=list)
    page_fault: bool = False


class MemoryManager:
    """Frame table, residency list and reference bits plus the load policies."""

    def __init__(self, total_kb: int, max_processes: int, policy: MemoryPolicy = MemoryPolicy.SWAP):
        if total_kb < 0:
            raise ConfigurationError(f"memory size must not be negative, got {total_kb}")
        self.policy = policy
        self.total_pages = total_kb // PAGE_SIZE_KB
        self.max_processes = max_processes
        self.frames: List[Optional[int]] = [None] * self.total_pages
        self.reference_bits: List[int] = [0] * self.total_pages
        self.resident: List[int] = []
        self.clock_hand = 0

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------
    def count_free(self) -> int:
        return sum(1 for owner in self.frames if owner is None)

    @property
    def used_pages(self) -> int:
        return self.total_pages - self.count_free()

    @property
    def usage(self) -> int:
        """Percentage of frames in use, rounded up."""
        if self.total_pages == 0:
            return 0
        return math.ceil(100 * self.used_pages / self.total_pages)

    def resident_pages(self, pid: int) -> int:
        return sum(1 for owner in self.frames if owner == pid)

    def frames_of(self, pid: int) -> List[int]:
        return [idx for idx, owner in enumerate(self.frames) if owner == pid]

    def is_resident(self, pid: int) -> bool:
        return pid in self.resident

    def _register(self, pid: int) -> None:
        if pid in self.resident:
            return
        if len(self.resident) >= self.max_processes:
            raise MemoryExhaustedError(
                f"cannot track process {pid}: {self.max_processes} processes already resident"
            )
        self.resident.append(pid)

    def _free_frame(self, idx: int) -> None:
        owner = self.frames[idx]
        self.frames[idx] = None
        self.reference_bits[idx] = 0
        if owner is not None and owner not in self.frames:
            self.resident.remove(owner)

    # ------------------------------------------------------------------
    # Primitive operations
    # ------------------------------------------------------------------
    def insert(self, pid: int, n_pages: int) -> List[int]:
        """Give ``pid`` up to ``n_pages`` free frames, lowest index first.

        Loads fewer pages when fewer frames are free; callers make room first.
        """
        if n_pages > 0 and self.count_free() > 0:
            self._register(pid)

        claimed: List[int] = []
        for idx, owner in enumerate(self.frames):
            if len(claimed) >= n_pages:
                break
            if owner is None:
                self.frames[idx] = pid
                self.reference_bits[idx] = 1
                claimed.append(idx)
        return claimed

    def evict_all(self, pid: int) -> List[int]:
        """Free every frame owned by ``pid``."""
        freed = self.frames_of(pid)
        for idx in freed:
            self.frames[idx] = None
            self.reference_bits[idx] = 0
        if pid in self.resident:
            self.resident.remove(pid)
        return freed

    def evict_one(self, pid: int) -> Optional[int]:
        """Free the lowest-indexed frame owned by ``pid``."""
        for idx, owner in enumerate(self.frames):
            if owner == pid:
                self._free_frame(idx)
                return idx
        return None

    def choose_evictee(self, exclude: Optional[int] = None) -> Optional[int]:
        """Pick the process to evict pages from.

        Returns the most recently registered resident PID (the last entry of
        the residency list), skipping ``exclude``. ``None`` when nothing else
        is resident.
        """
        for pid in reversed(self.resident):
            if pid != exclude:
                return pid
        return None

    def clock_evict(self, requesting_pid: int) -> int:
        """Second-chance sweep. Frees one frame not owned by the requester."""
        if not any(owner is not None and owner != requesting_pid for owner in self.frames):
            raise MemoryExhaustedError(
                f"no frame owned by another process can be freed for process {requesting_pid}"
            )

        while True:
            idx = self.clock_hand
            self.clock_hand = (self.clock_hand + 1) % self.total_pages
            owner = self.frames[idx]
            if owner is None or owner == requesting_pid:
                continue
            if self.reference_bits[idx]:
                self.reference_bits[idx] = 0
                continue
            self._free_frame(idx)
            return idx

    def touch(self, pid: int) -> None:
        """Mark every page of ``pid`` as referenced."""
        for idx, owner in enumerate(self.frames):
            if owner == pid:
                self.reference_bits[idx] = 1

    # ------------------------------------------------------------------
    # Load policies
    # ------------------------------------------------------------------
    def load(self, process: Process) -> LoadResult:
        """Make ``process`` runnable under the configured policy."""
        if self.policy is MemoryPolicy.UNLIMITED:
            return LoadResult()
        elif self.policy is MemoryPolicy.SWAP:
            return self._load_swap(process)
        elif self.policy is MemoryPolicy.VIRTUAL:
            return self._load_paged(process, self._evict_lru_page)
        elif self.policy is MemoryPolicy.SECOND_CHANCE:
            return self._load_paged(process, self.clock_evict)
        raise ValueError(f"Unknown memory policy: {self.policy}")

    def _load_swap(self, process: Process) -> LoadResult:
        pid = process.pid
        required = pages_for(process.memory_required)
        missing = required - self.resident_pages(pid)
        if missing <= 0:
            return LoadResult()

        evicted: List[int] = []
        while self.count_free() < missing:
            victim = self.choose_evictee(exclude=pid)
            if victim is None:
                raise MemoryExhaustedError(
                    f"process {pid} needs {missing} pages but only {self.count_free()} can be freed"
                )
            evicted.extend(self.evict_all(victim))

        loaded = self.insert(pid, missing)
        return LoadResult(
            penalty=len(loaded) * LOAD_TIME_PER_PAGE,
            loaded=loaded,
            evicted=sorted(set(evicted)),
        )

    def _evict_lru_page(self, requesting_pid: int) -> int:
        victim = self.choose_evictee(exclude=requesting_pid)
        if victim is None:
            raise MemoryExhaustedError(f"no resident process can give up a page for process {requesting_pid}")
        return self.evict_one(victim)

    def _load_paged(self, process: Process, evict_page: Callable[[int], int]) -> LoadResult:
        pid = process.pid
        required = pages_for(process.memory_required)
        minimum = min(MIN_RESIDENT_PAGES, required)
        resident = self.resident_pages(pid)

        # Enough pages to run; whatever is missing faults in later
        if resident >= minimum:
            return LoadResult(page_fault=resident < required)

        missing = required - resident
        free = self.count_free()
        if free >= missing:
            loaded = self.insert(pid, missing)
            return LoadResult(penalty=len(loaded) * LOAD_TIME_PER_PAGE, loaded=loaded)

        shortfall = minimum - resident
        if free >= shortfall:
            loaded = self.insert(pid, free)
            return LoadResult(penalty=len(loaded) * LOAD_TIME_PER_PAGE, loaded=loaded, page_fault=True)

        evicted: List[int] = []
        while self.count_free() < shortfall:
            evicted.append(evict_page(pid))
        loaded = self.insert(pid, shortfall)
        return LoadResult(
            penalty=len(loaded) * LOAD_TIME_PER_PAGE,
            loaded=loaded,
            evicted=sorted(set(evicted)),
            page_fault=True,
        )
