from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from colorama import Fore, Style, init as colorama_init

from paged_os_simulator.backend.errors import ConfigurationError, InputFormatError, MemoryExhaustedError
from paged_os_simulator.backend.simulator import SimulationConfig, simulate
from paged_os_simulator.backend.utils import load_processes, process_report


EXIT_OK = 0
EXIT_BAD_INPUT = 1
EXIT_MEMORY = 2


class ArgumentParser(argparse.ArgumentParser):
    """Reports usage errors as configuration errors instead of exiting."""

    def error(self, message):
        self.print_usage(sys.stderr)
        raise ConfigurationError(message)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = ArgumentParser(description="Paged OS scheduler simulator")
    p.add_argument("-f", "--file", required=True, help="Process list: 'arrival pid memory_kb job_time' per line")
    p.add_argument("-a", "--algorithm", required=True, help="Scheduling: ff (fcfs), rr (round_robin), cs (custom, shortest job first)")
    p.add_argument("-m", "--memory", required=True, help="Memory: u (unlimited), p (swap), v (virtual), cm (custom, second chance)")
    p.add_argument("-s", "--memory-size", type=int, default=None, help="Memory size in KB (bounded memory only)")
    p.add_argument("-q", "--quantum", type=int, default=10, help="Round robin quantum in seconds")
    p.add_argument("--events-json", type=str, default=None, help="Write recorded events to this JSON file")
    p.add_argument("--events-csv", type=str, default=None, help="Base path for events/timeline CSV files")
    p.add_argument("--report", type=str, default=None, help="Write the per-process report to this CSV file")
    p.add_argument("--plot", type=str, default=None, help="Save a Gantt chart of the run")
    p.add_argument("--memory-plot", type=str, default=None, help="Save a memory usage plot of the run")
    return p.parse_args(argv)


def error(message: str) -> None:
    print(Fore.RED + f"error: {message}" + Style.RESET_ALL, file=sys.stderr)


def main(argv: Optional[List[str]] = None) -> int:
    colorama_init()

    try:
        args = parse_args(argv)
        config = SimulationConfig(
            scheduling_policy=args.algorithm,
            memory_policy=args.memory,
            memory_size_kb=args.memory_size,
            quantum=args.quantum,
        )
    except ConfigurationError as e:
        error(str(e))
        return EXIT_BAD_INPUT

    try:
        procs = load_processes(args.file)
    except OSError as e:
        error(f"cannot read {args.file}: {e.strerror or e}")
        return EXIT_BAD_INPUT
    except InputFormatError as e:
        error(f"{args.file}: {e}")
        return EXIT_BAD_INPUT

    try:
        result = simulate(procs, config=config, emit=print)
    except MemoryExhaustedError as e:
        error(str(e))
        return EXIT_MEMORY

    if args.events_json:
        result.logger.export_json(args.events_json)
    if args.events_csv:
        result.logger.export_csv(args.events_csv)
    if args.report:
        process_report(result.log).to_csv(args.report, index=False)
    if args.plot or args.memory_plot:
        # matplotlib is only pulled in when a plot is requested
        from paged_os_simulator.backend.visualizer import plot_gantt, plot_memory_usage
        if args.plot:
            plot_gantt(result.logger, args.plot)
        if args.memory_plot:
            plot_memory_usage(result.logger, args.memory_plot, makespan=result.makespan)

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
