"""Applies pod resource recommendations to a stored recommendation object."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import IntEnum

from alameda.autoscaling import (
    RESOURCE_CPU,
    RESOURCE_MEMORY,
    AlamedaRecommendation,
)

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_INT_PATTERN = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


class RecommendationMetric(IntEnum):
    """Metric a recommendation is about."""

    CPU_USAGE_SECONDS_PERCENTAGE = 0
    MEMORY_USAGE_BYTES = 1


_RESOURCE_BY_METRIC = {
    RecommendationMetric.CPU_USAGE_SECONDS_PERCENTAGE: RESOURCE_CPU,
    RecommendationMetric.MEMORY_USAGE_BYTES: RESOURCE_MEMORY,
}


@dataclass
class RecommendationSample:
    """One recommended value at one time; CPU in millicores, memory in bytes."""

    time: datetime | None
    num_value: str


@dataclass
class MetricRecommendation:
    """Recommended values of one metric over time."""

    metric_type: RecommendationMetric
    data: list[RecommendationSample] = field(default_factory=list)


@dataclass
class ContainerRecommendation:
    """Recommended limits and requests for one container."""

    name: str
    limit_recommendations: list[MetricRecommendation] = field(default_factory=list)
    request_recommendations: list[MetricRecommendation] = field(default_factory=list)


@dataclass
class PodRecommendation:
    """Recommendations for the containers of one pod."""

    namespace: str
    name: str
    container_recommendations: list[ContainerRecommendation] = field(default_factory=list)


def _nanoseconds(moment: datetime | None) -> int:
    if moment is None:
        return 0
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return ((moment - _EPOCH) // timedelta(microseconds=1)) * 1000


def _parse_int64(text: str) -> int:
    if not isinstance(text, str) or not _INT_PATTERN.fullmatch(text):
        raise ValueError(f"invalid integer value {text!r}")
    value = int(text)
    if not _INT64_MIN <= value <= _INT64_MAX:
        raise ValueError(f"integer value {text!r} out of range")
    return value


def _apply(resources: dict[str, int], recommendations: list[MetricRecommendation]) -> None:
    for recommendation in recommendations:
        resource_name = _RESOURCE_BY_METRIC.get(recommendation.metric_type)
        if resource_name is None:
            continue
        latest = 0
        for sample in recommendation.data:
            moment = _nanoseconds(sample.time)
            try:
                value = _parse_int64(sample.num_value)
            except ValueError as exc:
                logger.error("%s", exc)
                continue
            if moment > latest:
                resources[resource_name] = value
                latest = moment


class RecommendationReconciler:
    """Updates the resources recorded in one recommendation object."""

    def __init__(self, recommendation: AlamedaRecommendation):
        self.recommendation = recommendation

    def update_resource_recommendation(
        self, pod_recommendation: PodRecommendation
    ) -> AlamedaRecommendation:
        """Set each container's limits and requests to the latest recommended values."""
        for container in self.recommendation.containers:
            for container_rec in pod_recommendation.container_recommendations:
                if container.name != container_rec.name:
                    continue
                resources = container.resources
                if resources.limits is None:
                    resources.limits = {}
                if resources.requests is None:
                    resources.requests = {}
                _apply(resources.limits, container_rec.limit_recommendations)
                _apply(resources.requests, container_rec.request_recommendations)
        return self.recommendation