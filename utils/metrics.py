"""In-process metrics for optimization runs and oracle calls."""
import json
from collections import defaultdict
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

ROUND_TAG = "iteration"


@dataclass
class Sample:
    """One recorded value."""
    name: str
    value: float
    recorded_at: str
    tags: Dict[str, str] = field(default_factory=dict)


class MetricsCollector:
    """
    Counters, gauges and histograms kept in memory.

    Gauges recorded with an ``iteration`` tag are also kept per round, so
    self-reported and measured pass rates can be compared after a run.
    """

    def __init__(self, storage_path: Optional[Path] = None):
        """
        Args:
            storage_path: Directory used by export() (defaults to output/metrics)
        """
        self.storage_path = Path(storage_path) if storage_path else Path("output") / "metrics"

        self._samples: List[Sample] = []
        self._counters: Dict[str, int] = defaultdict(int)
        self._gauges: Dict[str, float] = {}
        self._rounds: Dict[str, Dict[str, float]] = defaultdict(dict)
        self._histograms: Dict[str, List[float]] = defaultdict(list)

    def _sample(self, name: str, value: float, tags: Optional[Dict[str, str]]):
        self._samples.append(Sample(
            name=name,
            value=value,
            recorded_at=datetime.now(timezone.utc).isoformat(),
            tags=dict(tags or {})
        ))

    def increment(self, name: str, value: int = 1, tags: Optional[Dict[str, str]] = None):
        """Add to a counter."""
        self._counters[name] += value
        self._sample(name, self._counters[name], tags)

    def gauge(self, name: str, value: float, tags: Optional[Dict[str, str]] = None):
        """Set a gauge; the last value wins."""
        self._gauges[name] = value
        if tags and ROUND_TAG in tags:
            self._rounds[tags[ROUND_TAG]][name] = value
        self._sample(name, value, tags)

    def histogram(self, name: str, value: float, tags: Optional[Dict[str, str]] = None):
        """Add an observation (e.g. a call duration)."""
        self._histograms[name].append(value)
        self._sample(name, value, tags)

    def get_counter(self, name: str) -> int:
        return self._counters.get(name, 0)

    def get_gauge(self, name: str) -> Optional[float]:
        return self._gauges.get(name)

    def get_round_gauges(self) -> Dict[str, Dict[str, float]]:
        """Per-round gauges, keyed by iteration number (as text) in round order."""
        return {key: dict(self._rounds[key]) for key in sorted(self._rounds, key=int)}

    def get_summary(self) -> Dict[str, Any]:
        histograms = {}
        for name, values in self._histograms.items():
            histograms[name] = {
                "count": len(values),
                "min": min(values),
                "max": max(values),
                "avg": sum(values) / len(values),
            }

        return {
            "counters": dict(self._counters),
            "gauges": dict(self._gauges),
            "rounds": self.get_round_gauges(),
            "histograms": histograms,
            "total_samples": len(self._samples)
        }

    def export(self, filepath: Optional[str] = None) -> str:
        """
        Write the summary and the most recent samples as JSON.

        Args:
            filepath: Target file (defaults to a timestamped file under storage_path)

        Returns:
            Path of the written file
        """
        if filepath is None:
            self.storage_path.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
            filepath = str(self.storage_path / f"metrics_{stamp}.json")

        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(
                {
                    "summary": self.get_summary(),
                    "samples": [asdict(s) for s in self._samples[-1000:]]
                },
                f,
                indent=2
            )
        return filepath

    def clear(self):
        self._samples.clear()
        self._counters.clear()
        self._gauges.clear()
        self._rounds.clear()
        self._histograms.clear()


_global_collector: Optional[MetricsCollector] = None


def get_metrics_collector() -> MetricsCollector:
    """Process-wide collector shared by the optimizer modules."""
    global _global_collector
    if _global_collector is None:
        _global_collector = MetricsCollector()
    return _global_collector
