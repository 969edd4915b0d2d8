from __future__ import annotations
import json
from collections import Counter
from pathlib import Path
from typing import List, Dict, Any
from ..config import SimConfig
from ..attack.controller import AttackResult
from . import viz

COUNTERS = ("bytes_written", "bytes_read", "lines_reloaded", "set_evictions", "probes")


def _calculate_percentiles(data: List[float]) -> Dict[str, float]:
    """Nearest-rank min, max, p50, p95, p99 and mean of a sample."""
    if not data:
        return {}
    data.sort()
    n = len(data)
    return {
        "min": data[0],
        "max": data[-1],
        "p50": data[int(n * 0.5)],
        "p95": data[int(n * 0.95)],
        "p99": data[int(n * 0.99)],
        "avg": sum(data) / n
    }


def summarize(results: List[AttackResult]) -> Dict[str, Any]:
    """Aggregates per-trial results the way the statistics harness reports them."""
    summary: Dict[str, Any] = {
        "iterations": len(results),
        "successes": sum(1 for r in results if r.success),
        "guesses_needed": sum(r.guesses_used for r in results),
        "guess_histogram": dict(sorted(Counter(r.guesses_used for r in results if r.success).items())),
        "totals": {name: sum(getattr(r, name) for r in results) for name in COUNTERS},
    }
    if results:
        summary["averages"] = {name: total / len(results) for name, total in summary["totals"].items()}
        summary["probe_stats"] = _calculate_percentiles([float(r.probes) for r in results])
    return summary


def generate_report_json(results: List[AttackResult], config: SimConfig) -> Dict[str, Any]:
    """Generates a JSON-compatible dictionary from the trial results."""
    report_data = {
        "config": config.__dict__,
        "trials": [r.to_dict() for r in results],
    }
    report_data.update(summarize(results))
    return report_data


def generate_report(results: List[AttackResult], config: SimConfig) -> Dict[str, Any]:
    """Generates all report artifacts."""
    report_data = generate_report_json(results, config)
    output_dir = Path(config.report_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    with open(output_dir / "report.json", "w") as f:
        json.dump(report_data, f, indent=4)

    viz.export_histogram(report_data["trials"], str(output_dir / "report.html"), field="probes")
    print(viz.export_histogram_ascii(report_data["trials"], field="probes"))

    print(f"\nReports generated in {output_dir.absolute()}")
    print(f"\nIterations: {report_data['iterations']}")
    print(f"Successes: {report_data['successes']}")
    print(f"Guesses needed: {report_data['guesses_needed']}")
    totals = report_data["totals"]
    print(f"Bytes written to the victim buffer: {totals['bytes_written']}")
    print(f"Bytes read from the victim buffer: {totals['bytes_read']}")
    print(f"Lines loaded directly by the attacker: {totals['lines_reloaded']}")
    print(f"Number of set evictions performed by the attacker: {totals['set_evictions']}")
    if report_data.get("guess_histogram"):
        print("\nGuesses per successful trial:")
        for guesses, count in report_data["guess_histogram"].items():
            print(f"  {guesses}: {count}")
    return report_data
