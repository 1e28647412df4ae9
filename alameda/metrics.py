"""Metric query model shared by the metrics backends."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum, IntEnum
from typing import Union


class MetricType(IntEnum):
    """Kinds of metric that can be queried."""

    CONTAINER_CPU_USAGE_TOTAL = 0
    CONTAINER_CPU_USAGE_TOTAL_RATE = 1
    CONTAINER_MEMORY_USAGE = 2
    NODE_CPU_USAGE_SECONDS_AVG1M = 3
    NODE_MEMORY_USAGE_BYTES = 4


class StringOperator(IntEnum):
    """Comparison applied by a label selector."""

    EQUAL = 0
    NOT_EQUAL = 1


class LabelSelectorKey(str, Enum):
    """Backend-independent label names."""

    NAMESPACE = "namespace"
    POD_NAME = "pod_name"
    CONTAINER_NAME = "container_name"
    NODE_NAME = "node_name"


_CONTAINER_KEYS = (
    LabelSelectorKey.NAMESPACE,
    LabelSelectorKey.POD_NAME,
    LabelSelectorKey.CONTAINER_NAME,
)
_NODE_KEYS = (LabelSelectorKey.NODE_NAME,)

_AVAILABLE_LABEL_KEYS = {
    MetricType.CONTAINER_CPU_USAGE_TOTAL: _CONTAINER_KEYS,
    MetricType.CONTAINER_CPU_USAGE_TOTAL_RATE: _CONTAINER_KEYS,
    MetricType.CONTAINER_MEMORY_USAGE: _CONTAINER_KEYS,
    MetricType.NODE_CPU_USAGE_SECONDS_AVG1M: _NODE_KEYS,
    MetricType.NODE_MEMORY_USAGE_BYTES: _NODE_KEYS,
}


@dataclass(frozen=True)
class LabelSelector:
    """Restricts a query to series whose label compares with a value."""

    key: str
    value: str
    op: StringOperator = StringOperator.EQUAL

    def __post_init__(self) -> None:
        if isinstance(self.key, LabelSelectorKey):
            object.__setattr__(self, "key", self.key.value)
        object.__setattr__(self, "op", StringOperator(self.op))


@dataclass(frozen=True)
class Timestamp:
    """Query the value at a single instant."""

    t: datetime


@dataclass(frozen=True)
class TimeRange:
    """Query samples between two instants, one every ``step``."""

    start_time: datetime
    end_time: datetime
    step: timedelta = timedelta(0)


@dataclass(frozen=True)
class Since:
    """Query the samples of the last ``duration``."""

    duration: timedelta


TimeSelector = Union[Timestamp, TimeRange, Since]


@dataclass
class Query:
    """A metrics query: which metric, when, and for which labels."""

    metric: MetricType
    time_selector: TimeSelector | None = None
    label_selectors: list[LabelSelector] = field(default_factory=list)


@dataclass
class Sample:
    """One value of a series at one time."""

    time: datetime
    value: float


@dataclass
class Data:
    """One series: its labels and samples."""

    labels: dict[str, str] = field(default_factory=dict)
    samples: list[Sample] = field(default_factory=list)


@dataclass
class QueryResponse:
    """Series returned for a query of one metric."""

    metric: MetricType
    results: list[Data] = field(default_factory=list)


def is_label_need_transform(src: str, dest: str) -> bool:
    """Tell whether a label has to be renamed from ``src`` to ``dest``."""
    return src != dest


def available_label_keys(metric: MetricType) -> tuple[LabelSelectorKey, ...]:
    """Label keys that can select series of ``metric``."""
    return _AVAILABLE_LABEL_KEYS[MetricType(metric)]