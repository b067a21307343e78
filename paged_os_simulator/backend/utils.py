from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional
import csv
import json

import pandas as pd

from .core import Process, StatisticsLog
from .errors import InputFormatError


RUNNING = "RUNNING"
EVICTED = "EVICTED"
FINISHED = "FINISHED"

EVENT_FIELDS = [
    "time", "event", "pid", "remaining_time", "load_time",
    "mem_usage", "mem_addresses", "proc_remaining",
]


def _addresses(addresses: Iterable[int]) -> str:
    return "[" + ",".join(str(a) for a in addresses) + "]"


def format_event(event: Dict[str, Any]) -> str:
    """Render one recorded event as a transcript line."""
    kind = event["event"]
    time_s = event["time"]
    if kind == RUNNING:
        line = f"{time_s}, RUNNING, id={event['pid']}, remaining-time={event['remaining_time']}"
        if event.get("mem_usage") is not None:
            line += (
                f", load-time={event['load_time']}, mem-usage={event['mem_usage']}%"
                f", mem-addresses={_addresses(event['mem_addresses'])}"
            )
        return line
    if kind == EVICTED:
        return f"{time_s}, EVICTED, mem-addresses={_addresses(event['mem_addresses'])}"
    if kind == FINISHED:
        return f"{time_s}, FINISHED, id={event['pid']}, proc-remaining={event['proc_remaining']}"
    raise ValueError(f"Unknown event kind: {kind}")


def format_statistics(log: StatisticsLog, makespan: Optional[int] = None) -> List[str]:
    """End-of-run performance statistics lines."""
    makespan = log.makespan if makespan is None else makespan
    throughput = log.throughput(makespan)
    overhead = log.overhead()
    return [
        f"Throughput {throughput.average}, {throughput.minimum}, {throughput.maximum}",
        f"Turnaround time {log.turnaround()}",
        f"Time overhead {overhead.maximum:.2f} {overhead.average:.2f}",
        f"Makespan {makespan}",
    ]


class EventLogger:
    def __init__(self) -> None:
        self.events: List[Dict[str, Any]] = []
        self.timeline: List[Dict[str, Any]] = []
        self.memory_usage: List[Dict[str, Any]] = []

    def _record(self, **event: Any) -> Dict[str, Any]:
        row = {name: event.get(name) for name in EVENT_FIELDS}
        self.events.append(row)
        return row

    def log_running(self, time_s: int, process: Process, load_time: Optional[int] = None,
                    mem_usage: Optional[int] = None, mem_addresses: Optional[List[int]] = None) -> Dict[str, Any]:
        return self._record(
            time=time_s,
            event=RUNNING,
            pid=process.pid,
            remaining_time=process.time_remaining,
            load_time=load_time,
            mem_usage=mem_usage,
            mem_addresses=list(mem_addresses) if mem_addresses is not None else None,
        )

    def log_evicted(self, time_s: int, addresses: List[int]) -> Dict[str, Any]:
        return self._record(time=time_s, event=EVICTED, mem_addresses=list(addresses))

    def log_finished(self, time_s: int, pid: int, proc_remaining: int) -> Dict[str, Any]:
        return self._record(time=time_s, event=FINISHED, pid=pid, proc_remaining=proc_remaining)

    def log_timeline_slice(self, start: int, end: int, pid: int, kind: str) -> None:
        """Record that ``pid`` held the CPU over [start, end) doing ``kind``.

        Contiguous slices of the same process and kind are merged.
        """
        if self.timeline:
            last = self.timeline[-1]
            if last["pid"] == pid and last["kind"] == kind and last["end"] == start:
                last["end"] = end
                return
        self.timeline.append({
            "start": start,
            "end": end,
            "pid": pid,
            "kind": kind,
        })

    def log_memory_usage(self, time_s: int, usage: int) -> None:
        if self.memory_usage and self.memory_usage[-1]["usage"] == usage:
            return
        self.memory_usage.append({"time": time_s, "usage": usage})

    def transcript(self) -> List[str]:
        return [format_event(e) for e in self.events]

    def export_json(self, path: str) -> None:
        data = {
            "events": self.events,
            "timeline": self.timeline,
            "memory_usage": self.memory_usage,
        }
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

    def export_csv(self, base_path_no_ext: str) -> None:
        with open(f"{base_path_no_ext}_events.csv", "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=EVENT_FIELDS)
            writer.writeheader()
            for row in self.events:
                row = dict(row)
                if row["mem_addresses"] is not None:
                    row["mem_addresses"] = " ".join(str(a) for a in row["mem_addresses"])
                writer.writerow(row)
        with open(f"{base_path_no_ext}_timeline.csv", "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=["start", "end", "pid", "kind"])
            writer.writeheader()
            for row in self.timeline:
                writer.writerow(row)


def parse_processes(lines: Iterable[str]) -> List[Process]:
    """Parse ``arrival pid memory_kb job_time`` records, one per line."""
    procs: List[Process] = []
    seen: Dict[int, int] = {}
    for line_no, raw in enumerate(lines, start=1):
        line = raw.split("#", 1)[0].strip()
        if not line:
            continue
        fields = line.split()
        if len(fields) != 4:
            raise InputFormatError(f"expected 4 fields, got {len(fields)}: {raw.strip()!r}", line_no)
        try:
            arrival, pid, memory_kb, job_time = (int(x) for x in fields)
        except ValueError:
            raise InputFormatError(f"non-integer field in {raw.strip()!r}", line_no) from None

        if arrival < 0 or pid < 0 or memory_kb < 0:
            raise InputFormatError("values must not be negative", line_no)
        if job_time <= 0:
            raise InputFormatError(f"process {pid} has no job time", line_no)
        if pid in seen:
            raise InputFormatError(f"duplicate pid {pid} (first seen on line {seen[pid]})", line_no)
        seen[pid] = line_no

        procs.append(Process(pid=pid, arrival_time=arrival, memory_required=memory_kb, job_time=job_time))
    return procs


def load_processes(path: str) -> List[Process]:
    """Read a process list file. ``OSError`` propagates if it cannot be opened."""
    with open(path, encoding="utf-8") as f:
        return parse_processes(f)


def process_report(log: StatisticsLog) -> pd.DataFrame:
    """One row per finished process, in finishing order."""
    rows = [{
        "pid": p.pid,
        "arrival": p.arrival_time,
        "memory_kb": p.memory_required,
        "job_time": p.job_time,
        "finished": p.time_finished,
        "turnaround": p.turnaround,
        "overhead": round(p.overhead, 2),
        "page_faults": p.page_faults,
    } for p in log.finished]
    columns = ["pid", "arrival", "memory_kb", "job_time", "finished", "turnaround", "overhead", "page_faults"]
    return pd.DataFrame(rows, columns=columns)
