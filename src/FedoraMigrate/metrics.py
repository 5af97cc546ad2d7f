"""In-process counters and histograms for a migration run.

Names are dotted, e.g. ``migrate.rows.file`` or ``migrate.duration_ms``.
:func:`get_counters` flattens histograms into ``histo.<name>.<bucket>`` entries
so one mapping describes the whole run.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass, field

# Upper bounds in milliseconds.
DURATION_BUCKETS_MS: tuple[int, ...] = (10, 50, 100, 500, 1000, 5000, 10000, 60000)


@dataclass
class _Histogram:
    buckets: dict[str, int] = field(default_factory=dict)
    total: int = 0
    count: int = 0

    def observe(self, value: int, bounds: Sequence[int]) -> None:
        label = next((f"le_{bound}" for bound in bounds if value <= bound), f"gt_{bounds[-1]}")
        self.buckets[label] = self.buckets.get(label, 0) + 1
        self.total += int(value)
        self.count += 1


_counters: dict[str, int] = defaultdict(int)
_histograms: dict[str, _Histogram] = {}


def inc_counter(name: str, value: int = 1) -> None:
    _counters[name] += int(value)


def get_counter(name: str) -> int:
    return _counters.get(name, 0)


def observe_histogram(name: str, value: int, *, buckets: Sequence[int] | None = None) -> None:
    """Count ``value`` in the first bucket whose bound is >= value.

    Values above the last bound land in ``gt_<last bound>``.
    """
    bounds = buckets or DURATION_BUCKETS_MS
    _histograms.setdefault(name, _Histogram()).observe(value, bounds)


def reset_counters() -> None:
    _counters.clear()
    _histograms.clear()


def get_counters() -> dict[str, int]:
    out = dict(_counters)
    for name, histogram in _histograms.items():
        for label, count in histogram.buckets.items():
            out[f"histo.{name}.{label}"] = count
        out[f"histo.{name}.sum"] = histogram.total
        out[f"histo.{name}.count"] = histogram.count
    return out
