from __future__ import annotations

import argparse
import csv
import json
import logging
import math
from pathlib import Path
from typing import Optional

from ..sim.core.config import ConfigError, SimulationConfig
from ..sim.core.simulation import Simulation
from ..sim.types.metrics import FrameMetrics

log = logging.getLogger(__name__)

_BASIC_HEADER = [
    "tick",
    "population",
    "removed",
    "avg_speed",
    "max_speed",
    "tick_ms",
]

_DETAILED_HEADER = [
    "tick",
    "population",
    "removed",
    "active",
    "avg_speed",
    "max_speed",
    "tick_ms",
    "tick_ms_per_agent",
    "centroid_x",
    "centroid_y",
    "spread",
    "min_x",
    "max_x",
    "min_y",
    "max_y",
    "camera_x",
    "camera_y",
    "occupied_liquids",
]


def _format_basic_row(metrics: FrameMetrics, tick_ms: float) -> list[object]:
    return [
        metrics.tick,
        metrics.population,
        metrics.removed,
        f"{metrics.average_speed:.4f}",
        f"{metrics.max_speed:.4f}",
        f"{tick_ms:.3f}",
    ]


def _format_detailed_row(simulation: Simulation, metrics: FrameMetrics, tick_ms: float) -> list[object]:
    agents = simulation.agents
    population = len(agents)
    if population <= 0:
        tick_ms_per_agent = 0.0
        centroid_x = centroid_y = spread = 0.0
        min_x = max_x = min_y = max_y = 0.0
    else:
        tick_ms_per_agent = tick_ms / population
        xs = [agent.location.x for agent in agents]
        ys = [agent.location.y for agent in agents]
        centroid_x = sum(xs) / population
        centroid_y = sum(ys) / population
        spread = sum(math.hypot(x - centroid_x, y - centroid_y) for x, y in zip(xs, ys)) / population
        min_x, max_x = min(xs), max(xs)
        min_y, max_y = min(ys), max(ys)
    camera = simulation.world.location
    occupied = sum(1 for liquid in simulation.liquids if liquid.occupied)
    return [
        metrics.tick,
        population,
        metrics.removed,
        metrics.active,
        f"{metrics.average_speed:.4f}",
        f"{metrics.max_speed:.4f}",
        f"{tick_ms:.3f}",
        f"{tick_ms_per_agent:.4f}",
        f"{centroid_x:.4f}",
        f"{centroid_y:.4f}",
        f"{spread:.4f}",
        f"{min_x:.4f}",
        f"{max_x:.4f}",
        f"{min_y:.4f}",
        f"{max_y:.4f}",
        f"{camera.x:.4f}",
        f"{camera.y:.4f}",
        occupied,
    ]


def _percentile(sorted_values: list[float], percentile: float) -> float:
    if not sorted_values:
        return 0.0
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    pos = (len(sorted_values) - 1) * percentile
    low = int(math.floor(pos))
    high = int(math.ceil(pos))
    if low == high:
        return float(sorted_values[low])
    weight = pos - low
    return float(sorted_values[low] + (sorted_values[high] - sorted_values[low]) * weight)


def _summary_stats(values: list[float]) -> dict[str, float]:
    if not values:
        return {"min": 0.0, "max": 0.0, "avg": 0.0, "p50": 0.0, "p90": 0.0, "p95": 0.0, "p99": 0.0}
    sorted_values = sorted(values)
    total = sum(values)
    count = len(values)
    return {
        "min": float(sorted_values[0]),
        "max": float(sorted_values[-1]),
        "avg": float(total / count),
        "p50": _percentile(sorted_values, 0.50),
        "p90": _percentile(sorted_values, 0.90),
        "p95": _percentile(sorted_values, 0.95),
        "p99": _percentile(sorted_values, 0.99),
    }


def _correlation(xs: list[float], ys: list[float]) -> float:
    if len(xs) != len(ys) or len(xs) < 2:
        return 0.0
    mean_x = sum(xs) / len(xs)
    mean_y = sum(ys) / len(ys)
    num = 0.0
    denom_x = 0.0
    denom_y = 0.0
    for x, y in zip(xs, ys):
        dx = x - mean_x
        dy = y - mean_y
        num += dx * dy
        denom_x += dx * dx
        denom_y += dy * dy
    denom = math.sqrt(denom_x * denom_y)
    if denom == 0.0:
        return 0.0
    return float(num / denom)


def run_headless(
    steps: int,
    seed: Optional[int],
    log_path: Optional[Path],
    deterministic_log: bool = False,
    log_format: str = "detailed",
    summary_path: Optional[Path] = None,
    summary_window: int = 5000,
    config_path: Optional[Path] = None,
) -> Simulation:
    config = SimulationConfig.from_yaml(config_path) if config_path else SimulationConfig()
    if seed is not None:
        config.seed = seed

    log_mode = log_format.lower().strip()
    if log_mode not in {"basic", "detailed"}:
        raise ValueError(f"Unknown log format: {log_format}")

    simulation = Simulation(config)
    log.info("running %d frames with %d agents (seed=%d)", steps, len(simulation.agents), config.seed)

    writer = None
    csv_file = None
    if log_path:
        csv_file = Path(log_path).open("w", newline="")
        writer = csv.writer(csv_file)
        writer.writerow(_DETAILED_HEADER if log_mode == "detailed" else _BASIC_HEADER)

    tick_ms_series: list[float] = []
    population_series: list[int] = []
    speed_series: list[float] = []
    removed_total = 0
    max_tick_ms = (-1.0, -1)
    max_population = (-1, -1)

    try:
        for tick in range(steps):
            metrics = simulation.step(tick)
            tick_ms = 0.0 if deterministic_log else metrics.tick_duration_ms
            removed_total += metrics.removed

            if summary_path:
                tick_ms_series.append(tick_ms)
                population_series.append(metrics.population)
                speed_series.append(metrics.average_speed)
                if tick_ms > max_tick_ms[0]:
                    max_tick_ms = (tick_ms, tick)
                if metrics.population > max_population[0]:
                    max_population = (metrics.population, tick)

            if writer:
                if log_mode == "detailed":
                    writer.writerow(_format_detailed_row(simulation, metrics, tick_ms))
                else:
                    writer.writerow(_format_basic_row(metrics, tick_ms))
    finally:
        if csv_file:
            csv_file.close()

    log.info("finished %d frames, %d agents remain, %d expired", steps, len(simulation.agents), removed_total)

    if summary_path:
        window = max(1, int(summary_window))
        tail_slice = slice(max(0, len(tick_ms_series) - window), len(tick_ms_series))
        summary = {
            "steps": steps,
            "seed": config.seed,
            "log_format": log_mode,
            "deterministic_log": deterministic_log,
            "removed": removed_total,
            "tick_ms": _summary_stats(tick_ms_series),
            "population": _summary_stats([float(v) for v in population_series]),
            "average_speed": _summary_stats(speed_series),
            "correlations": {
                "tick_ms_vs_population": _correlation(tick_ms_series, [float(v) for v in population_series]),
            },
            "peaks": {
                "tick_ms": {"value": float(max_tick_ms[0]), "tick": max_tick_ms[1]},
                "population": {"value": max_population[0], "tick": max_population[1]},
            },
            "tail_window": {
                "window": window,
                "tick_ms": _summary_stats(tick_ms_series[tail_slice]),
                "population": _summary_stats([float(v) for v in population_series[tail_slice]]),
                "average_speed": _summary_stats(speed_series[tail_slice]),
            },
        }
        Path(summary_path).write_text(json.dumps(summary, indent=2))
    return simulation


def main() -> None:
    parser = argparse.ArgumentParser(description="Headless flora simulation")
    parser.add_argument("--steps", type=int, default=600)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--config", type=Path, default=None, help="YAML scenario file")
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write frame metrics")
    parser.add_argument(
        "--log-format",
        choices=["basic", "detailed"],
        default="detailed",
        help="CSV format to write when --log is provided.",
    )
    parser.add_argument(
        "--summary",
        type=Path,
        default=None,
        help="Optional JSON file to write summary stats for the run.",
    )
    parser.add_argument(
        "--summary-window",
        type=int,
        default=5000,
        help="Tail window size (frames) for summary stats.",
    )
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Write deterministic CSV (tick_ms is forced to 0.000 so identical seeds match).",
    )
    parser.add_argument("--log-level", default="WARNING", help="Python logging level")
    args = parser.parse_args()
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(name)s %(levelname)s %(message)s")
    try:
        run_headless(
            args.steps,
            args.seed,
            args.log,
            deterministic_log=args.deterministic_log,
            log_format=args.log_format,
            summary_path=args.summary,
            summary_window=args.summary_window,
            config_path=args.config,
        )
    except ConfigError as exc:
        parser.error(str(exc))


if __name__ == "__main__":
    main()
