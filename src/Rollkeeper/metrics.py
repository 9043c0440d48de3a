"""Process-local counters and histograms, served flat by ``/metrics``."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field

DEFAULT_BUCKETS = (1, 2, 5, 10, 20, 50, 100, 250, 500, 1000, 2000, 5000)


@dataclass
class _Histogram:
    buckets: Counter = field(default_factory=Counter)
    total: int = 0
    count: int = 0


_counters: Counter = Counter()
_histograms: dict[str, _Histogram] = {}


def inc_counter(name: str, value: int = 1) -> None:
    _counters[name] += int(value)


def get_counter(name: str) -> int:
    return _counters[name]


def reset_counters() -> None:
    _counters.clear()
    _histograms.clear()


def observe_histogram(name: str, value: int, *, buckets: list[int] | None = None) -> None:
    """Count ``value`` in the first bucket whose upper bound it does not exceed.

    Values above every bound go to ``gt_<last bound>``.
    """
    bounds = buckets or DEFAULT_BUCKETS
    label = next((f"le_{ub}" for ub in bounds if value <= ub), f"gt_{bounds[-1]}")
    hist = _histograms.setdefault(name, _Histogram())
    hist.buckets[label] += 1
    hist.total += int(value)
    hist.count += 1


def get_counters() -> dict[str, int]:
    """Snapshot of every counter plus ``histo.<name>.<bucket|sum|count>`` entries."""
    out = {k: v for k, v in _counters.items() if v}
    for name, hist in _histograms.items():
        prefix = f"histo.{name}"
        out.update({f"{prefix}.{label}": n for label, n in hist.buckets.items()})
        out[f"{prefix}.sum"] = hist.total
        out[f"{prefix}.count"] = hist.count
    return out
