from __future__ import annotations

from .bucket import BucketedCounterStore, KeyedCounterStore, ScalarCounterStore
from .merge import KeyedMerge, MergeStrategy, ScalarMerge
from .overview import overview
from .schema import initialize_stats_schema
from .synchronizer import StatsSynchronizer, date_number, day_label, hour_label
from .types import FlushResult, Fragment, Statement, StatsSnapshot

__all__ = [
    "BucketedCounterStore",
    "FlushResult",
    "Fragment",
    "KeyedCounterStore",
    "KeyedMerge",
    "MergeStrategy",
    "ScalarCounterStore",
    "ScalarMerge",
    "Statement",
    "StatsSnapshot",
    "StatsSynchronizer",
    "date_number",
    "day_label",
    "hour_label",
    "initialize_stats_schema",
    "overview",
]
