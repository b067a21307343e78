from __future__ import annotations

from typing import Dict, Optional
import os

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
from matplotlib import colors as mcolors

from .utils import EventLogger


KIND_STYLE = {
    "cpu": {"alpha": 0.9, "hatch": None},
    "load": {"alpha": 0.35, "hatch": "//"},
}


def ensure_dir(path: str) -> None:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)


def _pid_colors(pids) -> Dict[int, str]:
    cmap = plt.get_cmap("tab20")
    return {pid: mcolors.to_hex(cmap(i % cmap.N)) for i, pid in enumerate(pids)}


def plot_gantt(logger: EventLogger, out_path: Optional[str] = None, title: str = "CPU Timeline"):
    """Gantt chart of CPU and page-loading slices per process."""
    pids_order = sorted({seg["pid"] for seg in logger.timeline})
    y_positions = {pid: i for i, pid in enumerate(pids_order)}
    colors = _pid_colors(pids_order)

    fig, ax = plt.subplots(figsize=(12, 3 + 0.3 * max(1, len(pids_order))))

    for seg in logger.timeline:
        style = KIND_STYLE[seg["kind"]]
        ax.barh(
            y_positions[seg["pid"]],
            seg["end"] - seg["start"],
            left=seg["start"],
            color=colors[seg["pid"]],
            edgecolor="black",
            alpha=style["alpha"],
            hatch=style["hatch"],
        )

    # Mark evictions
    for event in logger.events:
        if event["event"] == "EVICTED":
            ax.axvline(event["time"], color="#aa3333", linestyle=":", alpha=0.6)

    ax.set_yticks([y_positions[pid] for pid in pids_order])
    ax.set_yticklabels([f"P{pid}" for pid in pids_order])
    ax.set_xlabel("Time (s)")
    ax.set_title(title)
    ax.grid(True, axis="x", linestyle=":", alpha=0.5)
    fig.tight_layout()

    if out_path:
        ensure_dir(out_path)
        fig.savefig(out_path, dpi=150)
        plt.close(fig)
    return fig


def plot_memory_usage(logger: EventLogger, out_path: Optional[str] = None, makespan: Optional[int] = None):
    """Step plot of memory usage (percent of frames in use) over time."""
    fig, ax = plt.subplots(figsize=(12, 3))

    times = [sample["time"] for sample in logger.memory_usage]
    usage = [sample["usage"] for sample in logger.memory_usage]
    if times and makespan is not None and makespan > times[-1]:
        times.append(makespan)
        usage.append(usage[-1])
    ax.step(times, usage, where="post", color="#3366aa")

    ax.set_ylim(0, 105)
    ax.set_xlabel("Time (s)")
    ax.set_ylabel("Memory usage (%)")
    ax.set_title("Memory Usage")
    ax.grid(True, linestyle=":", alpha=0.5)
    fig.tight_layout()

    if out_path:
        ensure_dir(out_path)
        fig.savefig(out_path, dpi=150)
        plt.close(fig)
    return fig
