"""Decoding of metrics-server query responses into the common query model."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from alameda.metrics import (
    Data,
    MetricType,
    QueryResponse,
    Sample,
    is_label_need_transform,
)
from alameda.queries import label_mapper

STATUS_ERROR = "error"


class ResultType(str, Enum):
    """Shapes of result the metrics server can return."""

    MATRIX = "matrix"
    VECTOR = "vector"
    SCALAR = "scalar"
    STRING = "string"


class TransformError(ValueError):
    """A response could not be turned into a query response."""


@dataclass
class Response:
    """A decoded reply of the metrics server to one query."""

    status: str = ""
    result_type: str = ""
    result: list[Any] = field(default_factory=list)
    error_type: str = ""
    error: str = ""
    metric: MetricType = MetricType.CONTAINER_CPU_USAGE_TOTAL

    def to_query_response(self) -> QueryResponse:
        """Series of the response, with labels renamed to selector keys."""
        try:
            return transform_labels(self._transform_by_result_type())
        except TransformError as exc:
            raise TransformError(
                f"transform response to query response failed: {exc}"
            ) from exc

    def _transform_by_result_type(self) -> QueryResponse:
        result_type = getattr(self.result_type, "value", self.result_type)
        if result_type == ResultType.MATRIX.value:
            series = [_matrix_series(entry) for entry in self.result]
        elif result_type == ResultType.VECTOR.value:
            series = [_vector_series(entry) for entry in self.result]
        else:
            raise TransformError(f'not implement for resultType "{result_type}"')
        return QueryResponse(metric=self.metric, results=series)


def _entry_mapping(entry: Any) -> Mapping[str, Any]:
    if not isinstance(entry, Mapping):
        raise TransformError(
            "error while building sample, cannot convert type "
            f"{type(entry).__name__} to a mapping"
        )
    return entry


def _labels(raw: Any) -> dict[str, str]:
    if raw is None:
        return {}
    if not isinstance(raw, Mapping) or not all(
        isinstance(key, str) and isinstance(value, str) for key, value in raw.items()
    ):
        raise TransformError("series labels must map strings to strings")
    return dict(raw)


def _sample(value: Any) -> Sample:
    if not isinstance(value, (list, tuple)) or len(value) < 2:
        raise TransformError(f"error while building sample, malformed value {value!r}")
    raw_time, raw_value = value[0], value[1]
    if isinstance(raw_time, bool) or not isinstance(raw_time, (int, float)):
        raise TransformError(
            "error while building sample, cannot convert type "
            f"{type(raw_time).__name__} to float"
        )
    if not isinstance(raw_value, str):
        raise TransformError(
            f"error while building sample, cannot convert {raw_value!r}"
            f"(type {type(raw_value).__name__}) to string"
        )
    try:
        moment = datetime.fromtimestamp(int(raw_time), tz=timezone.utc)
    except (ValueError, OverflowError, OSError) as exc:
        raise TransformError(f"error while building sample, bad time {raw_time!r}") from exc
    try:
        number = float(raw_value)
    except ValueError as exc:
        raise TransformError(f"error while building sample, bad value {raw_value!r}") from exc
    return Sample(time=moment, value=number)


def _matrix_series(entry: Any) -> Data:
    entry = _entry_mapping(entry)
    values = entry.get("values")
    if values is None:
        values = []
    if not isinstance(values, (list, tuple)):
        raise TransformError("matrix result values must be a list")
    return Data(labels=_labels(entry.get("metric")), samples=[_sample(v) for v in values])


def _vector_series(entry: Any) -> Data:
    entry = _entry_mapping(entry)
    return Data(labels=_labels(entry.get("metric")), samples=[_sample(entry.get("value"))])


def transform_labels(query_response: QueryResponse) -> QueryResponse:
    """Rename the server's labels of every series to label-selector keys."""
    try:
        mapper = label_mapper(query_response.metric)
    except ValueError as exc:
        raise TransformError(
            "transform prometheus label to label selector key failed: no exist "
            f"LabelSelectorKey mapper for metric type {int(query_response.metric)}"
        ) from exc
    pairs = list(zip(mapper.prometheus_labels, mapper.label_selector_keys))
    for series in query_response.results:
        for src, dest in pairs:
            if is_label_need_transform(src, dest) and src in series.labels:
                series.labels[dest] = series.labels.pop(src)
    return query_response


def _text(mapping: Mapping[str, Any], key: str) -> str:
    value = mapping.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise TransformError(f'field "{key}" must be a string')
    return value


def parse_response(payload: Any, metric: MetricType) -> Response:
    """Build a :class:`Response` from a JSON document or its decoded form."""
    if isinstance(payload, (str, bytes, bytearray)):
        try:
            payload = json.loads(payload)
        except ValueError as exc:
            raise TransformError(f"decode response failed: {exc}") from exc
    if not isinstance(payload, Mapping):
        raise TransformError("response must be a JSON object")
    data = payload.get("data")
    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        raise TransformError('field "data" must be an object')
    result = data.get("result")
    if result is None:
        result = []
    if not isinstance(result, list):
        raise TransformError('field "result" must be a list')
    return Response(
        status=_text(payload, "status"),
        result_type=_text(data, "resultType"),
        result=list(result),
        error_type=_text(payload, "errorType"),
        error=_text(payload, "error"),
        metric=metric,
    )