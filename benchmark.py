"""
Benchmark and profiling for the Workload Governance Engine.

Provides:
- Function-level profiling with the @profile_function decorator
- A benchmark runner with timing statistics
- A synthetic snapshot generator to exercise the engines at scale

Usage:
    # Run the engine benchmarks
    python benchmark.py

    # Profile a function
    @profile_function
    def evaluate():
        ...
"""
import functools
import random
import statistics
import time
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from rich.console import Console
from rich.table import Table


console = Console()


# =============================================================================
# PROFILING DECORATOR
# =============================================================================

@dataclass
class ProfileResult:
    """Timing of one profiled call."""
    function_name: str
    execution_time: float
    timestamp: datetime = field(default_factory=datetime.now)
    success: bool = True
    error: Optional[str] = None


# Profiling data, keyed by qualified function name
_profile_data: Dict[str, List[ProfileResult]] = {}


def profile_function(func: Callable) -> Callable:
    """
    Record the execution time of every call to ``func``.

    Exceptions are recorded as failed calls and re-raised. Read the data
    back with get_profile_summary().
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> Any:
        started = time.perf_counter()
        error = None
        try:
            return func(*args, **kwargs)
        except Exception as e:
            error = str(e)
            raise
        finally:
            _profile_data.setdefault(func.__qualname__, []).append(ProfileResult(
                function_name=func.__qualname__,
                execution_time=time.perf_counter() - started,
                success=error is None,
                error=error,
            ))

    return wrapper


def get_profile_summary() -> Dict[str, Dict[str, Any]]:
    """
    Call statistics of every profiled function.

    Returns:
        Mapping of function name to call_count, success_count,
        failure_count, total_time, avg_time, min_time, max_time, std_dev
    """
    summary = {}
    for name, results in _profile_data.items():
        times = [r.execution_time for r in results]
        successes = sum(1 for r in results if r.success)
        summary[name] = {
            "call_count": len(results),
            "success_count": successes,
            "failure_count": len(results) - successes,
            "total_time": sum(times),
            "avg_time": statistics.mean(times) if times else 0,
            "min_time": min(times) if times else 0,
            "max_time": max(times) if times else 0,
            "std_dev": statistics.stdev(times) if len(times) > 1 else 0,
        }
    return summary


def clear_profile_data() -> None:
    _profile_data.clear()


def print_profile_report() -> None:
    """Print profiled functions, slowest total first."""
    summary = get_profile_summary()
    if not summary:
        console.print("[dim]No profiling data collected.[/dim]")
        return

    table = Table(title="⏱️ Profiling Report")
    table.add_column("Function", style="cyan")
    table.add_column("Calls", justify="right")
    table.add_column("Failed", justify="right")
    table.add_column("Total (ms)", justify="right")
    table.add_column("Avg (ms)", justify="right")
    table.add_column("Max (ms)", justify="right")

    for name, stats in sorted(summary.items(), key=lambda x: x[1]["total_time"], reverse=True):
        table.add_row(
            name,
            str(stats["call_count"]),
            str(stats["failure_count"]),
            f"{stats['total_time'] * 1000:.2f}",
            f"{stats['avg_time'] * 1000:.2f}",
            f"{stats['max_time'] * 1000:.2f}",
        )
    console.print(table)


# =============================================================================
# BENCHMARK RUNNER
# =============================================================================

@dataclass
class BenchmarkResult:
    """Timings of one benchmark."""
    name: str
    iterations: int
    times: List[float]
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def mean(self) -> float:
        return statistics.mean(self.times) if self.times else 0

    @property
    def median(self) -> float:
        return statistics.median(self.times) if self.times else 0

    @property
    def std_dev(self) -> float:
        return statistics.stdev(self.times) if len(self.times) > 1 else 0

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "iterations": self.iterations,
            "successful": len(self.times),
            "mean": self.mean,
            "median": self.median,
            "std_dev": self.std_dev,
            "min": min(self.times) if self.times else 0,
            "max": max(self.times) if self.times else 0,
            "timestamp": self.timestamp.isoformat(),
        }


class Benchmark:
    """
    Runs named callables several times and reports timing statistics.

    Usage:
        bench = Benchmark()
        bench.add("Alerts", detect, iterations=10)
        bench.run()
        bench.print_report()
    """

    def __init__(self, verbose: bool = True):
        self.verbose = verbose
        self.benchmarks: List[Dict] = []
        self.results: List[BenchmarkResult] = []

    def add(self, name: str, func: Callable, iterations: int = 5,
            args: tuple = (), kwargs: Optional[dict] = None) -> "Benchmark":
        self.benchmarks.append({
            "name": name,
            "func": func,
            "iterations": iterations,
            "args": args,
            "kwargs": kwargs or {},
        })
        return self

    def run(self) -> List[BenchmarkResult]:
        """Run every benchmark; failed iterations are reported and skipped."""
        self.results = []
        for bench in self.benchmarks:
            if self.verbose:
                console.print(f"[blue]Running benchmark: {bench['name']}...[/blue]")
            times = []
            for i in range(bench["iterations"]):
                started = time.perf_counter()
                try:
                    bench["func"](*bench["args"], **bench["kwargs"])
                except Exception as e:
                    console.print(f"[red]  Iteration {i + 1} failed: {e}[/red]")
                    continue
                times.append(time.perf_counter() - started)

            self.results.append(BenchmarkResult(
                name=bench["name"], iterations=bench["iterations"], times=times
            ))
        return self.results

    def print_report(self) -> None:
        if not self.results:
            console.print("[yellow]No benchmark results. Run benchmarks first.[/yellow]")
            return

        table = Table(title="🏃 Benchmark Report")
        table.add_column("Benchmark", style="cyan")
        table.add_column("Runs", justify="right")
        table.add_column("Mean (ms)", justify="right")
        table.add_column("Median (ms)", justify="right")
        table.add_column("Std Dev (ms)", justify="right")

        for result in self.results:
            table.add_row(
                result.name,
                f"{len(result.times)}/{result.iterations}",
                f"{result.mean * 1000:.2f}",
                f"{result.median * 1000:.2f}",
                f"{result.std_dev * 1000:.2f}",
            )
        console.print(table)

    def get_results_dict(self) -> List[dict]:
        return [r.to_dict() for r in self.results]


# =============================================================================
# SYNTHETIC DATA
# =============================================================================

SHIFT_PATTERNS = [("06:00", "14:00", 30), ("09:00", "13:00", 0), ("14:00", "22:00", 30),
                  ("10:00", "19:00", 60), ("22:00", "06:00", 30)]


def build_synthetic_snapshot(num_stores: int = 3, employees_per_store: int = 8,
                             week_start: date = date(2024, 12, 9), seed: int = 42):
    """
    Random but reproducible week of shifts.

    Each employee works between 1 and 7 days, so the week contains
    overloaded and underloaded employees.
    """
    from models.employee import Employee
    from models.schedule import ScheduleSnapshot
    from models.shift import Shift
    from models.store import Store

    rng = random.Random(seed)
    stores = [Store(id=f"S{i + 1}", name=f"Store {i + 1}") for i in range(num_stores)]
    employees = []
    shifts = []

    for store in stores:
        for n in range(employees_per_store):
            employee = Employee(
                id=f"{store.id}-E{n + 1}",
                first_name=f"Employee{n + 1}",
                last_name=store.name,
                contract_hours=rng.choice([24.0, 32.0, 40.0]),
                store_id=store.id,
            )
            employees.append(employee)

            days = sorted(rng.sample(range(7), rng.randint(1, 7)))
            for day in days:
                start, end, pause = rng.choice(SHIFT_PATTERNS)
                shifts.append(Shift(
                    id=f"{employee.id}-D{day}",
                    employee_id=employee.id,
                    store_id=store.id,
                    date=week_start + timedelta(days=day),
                    start_time=start,
                    end_time=end,
                    break_duration=pause,
                ))

    return ScheduleSnapshot(employees=employees, stores=stores, shifts=shifts)


# =============================================================================
# ENGINE BENCHMARK (MAIN)
# =============================================================================

def run_system_benchmark(iterations: int = 5) -> List[dict]:
    """Benchmark the engines on a synthetic snapshot."""
    from communication.message_bus import MessageBus
    from engines.coordinator import WorkloadCoordinator
    from models.shift import ShiftValidationStatus

    week_start = date(2024, 12, 9)
    snapshot = build_synthetic_snapshot(num_stores=5, employees_per_store=12,
                                        week_start=week_start)

    console.rule("[bold]WORKLOAD GOVERNANCE ENGINE - BENCHMARK SUITE")
    console.print(f"Started at: {datetime.now().isoformat()}")
    console.print(str(snapshot))

    coordinator = WorkloadCoordinator(MessageBus(verbose=False), verbose=False)
    plan = coordinator.evaluate_week(snapshot, week_start).plan

    bench = Benchmark()
    bench.add("Alert detection (1 week)", coordinator.detector.detect,
              iterations=iterations,
              args=(snapshot.employees, snapshot.shifts, snapshot.stores, week_start))
    bench.add("Balancing plan (1 week)", coordinator.balancer.generate,
              iterations=iterations, args=(snapshot, week_start))
    bench.add("Apply suggestions", coordinator.apply_suggestions,
              iterations=iterations, args=(plan.suggestions, snapshot))
    bench.add("Bulk submit for review", coordinator.transition_shifts,
              iterations=iterations,
              args=(snapshot.shifts, ShiftValidationStatus.READY_REVIEW, "user", "benchmark"),
              kwargs={"snapshot": snapshot})

    bench.run()
    bench.print_report()
    print_profile_report()

    return bench.get_results_dict()


if __name__ == "__main__":
    run_system_benchmark()
