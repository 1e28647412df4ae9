from datetime import datetime, timezone

import pytest

from alameda.metrics import Data, MetricType, QueryResponse, Sample
from alameda.promresponse import (
    Response,
    ResultType,
    TransformError,
    parse_response,
    transform_labels,
)

TIMESTAMP = 1435781430


def _at(seconds):
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def test_vector_container_response_keeps_labels():
    response = Response(
        metric=MetricType.CONTAINER_CPU_USAGE_TOTAL,
        status="success",
        result_type=ResultType.VECTOR,
        result=[
            {
                "metric": {
                    "container_name": "prometheus",
                    "cpu": "total",
                    "namespace": "openshift-monitoring",
                    "pod_name": "prometheus-k8s-0",
                },
                "value": [float(1435781430), "150556.78898869"],
            }
        ],
    )
    assert response.to_query_response() == QueryResponse(
        metric=MetricType.CONTAINER_CPU_USAGE_TOTAL,
        results=[
            Data(
                labels={
                    "container_name": "prometheus",
                    "cpu": "total",
                    "namespace": "openshift-monitoring",
                    "pod_name": "prometheus-k8s-0",
                },
                samples=[Sample(time=_at(TIMESTAMP), value=150556.78898869)],
            )
        ],
    )


def test_vector_node_response_renames_node_label():
    response = Response(
        metric=MetricType.NODE_MEMORY_USAGE_BYTES,
        status="success",
        result_type=ResultType.VECTOR,
        result=[{"metric": {"node": "localhost"}, "value": [float(1435781430), "150556"]}],
    )
    assert response.to_query_response() == QueryResponse(
        metric=MetricType.NODE_MEMORY_USAGE_BYTES,
        results=[
            Data(
                labels={"node_name": "localhost"},
                samples=[Sample(time=_at(TIMESTAMP), value=150556.0)],
            )
        ],
    )


def test_matrix_response_collects_every_sample():
    response = Response(
        metric=MetricType.CONTAINER_MEMORY_USAGE,
        status="success",
        result_type="matrix",
        result=[
            {
                "metric": {"namespace": "default"},
                "values": [[1543286478, "1.5"], [1543286508, "2.5"]],
            }
        ],
    )
    result = response.to_query_response()
    assert result.results == [
        Data(
            labels={"namespace": "default"},
            samples=[
                Sample(time=_at(1543286478), value=1.5),
                Sample(time=_at(1543286508), value=2.5),
            ],
        )
    ]


def test_fractional_timestamp_truncates():
    response = Response(result_type="vector", result=[{"metric": {}, "value": [1.9, "3"]}])
    assert response.to_query_response().results[0].samples[0].time == _at(1)


def test_parse_response_from_json_text():
    text = (
        '{"status":"success","data":{"resultType":"vector","result":'
        '[{"metric":{"node":"n1"},"value":[1435781430,"0.5"]}]},'
        '"errorType":"","error":""}'
    )
    response = parse_response(text, MetricType.NODE_CPU_USAGE_SECONDS_AVG1M)
    assert response.status == "success"
    assert response.result_type == "vector"
    assert response.to_query_response() == QueryResponse(
        metric=MetricType.NODE_CPU_USAGE_SECONDS_AVG1M,
        results=[Data(labels={"node_name": "n1"}, samples=[Sample(_at(TIMESTAMP), 0.5)])],
    )


def test_parse_response_keeps_error_fields():
    response = parse_response(
        {"status": "error", "errorType": "bad_data", "error": "parse error"},
        MetricType.CONTAINER_CPU_USAGE_TOTAL,
    )
    assert (response.status, response.error_type, response.error) == (
        "error",
        "bad_data",
        "parse error",
    )
    assert response.result == []


def test_parse_response_rejects_invalid_json():
    with pytest.raises(TransformError, match="decode response failed"):
        parse_response("{not json", MetricType.CONTAINER_CPU_USAGE_TOTAL)


def test_parse_response_rejects_non_list_result():
    with pytest.raises(TransformError):
        parse_response({"data": {"result": "x"}}, MetricType.CONTAINER_CPU_USAGE_TOTAL)


@pytest.mark.parametrize("result_type", ["scalar", "string", ""])
def test_unsupported_result_types(result_type):
    response = Response(result_type=result_type)
    with pytest.raises(TransformError, match=f'not implement for resultType "{result_type}"'):
        response.to_query_response()


@pytest.mark.parametrize(
    "entry",
    [
        ["not", "a", "mapping"],
        {"metric": {}, "value": ["1435781430", "1"]},
        {"metric": {}, "value": [1435781430, "abc"]},
        {"metric": {}, "value": [1435781430, 1.0]},
        {"metric": {}, "value": [1435781430]},
        {"metric": {}},
        {"metric": {"a": 1}, "value": [1435781430, "1"]},
    ],
)
def test_malformed_vector_entries(entry):
    response = Response(result_type="vector", result=[entry])
    with pytest.raises(TransformError):
        response.to_query_response()


def test_transform_labels_unknown_metric():
    with pytest.raises(TransformError, match="metric type 99"):
        transform_labels(QueryResponse(metric=99, results=[]))


def test_transform_labels_keeps_existing_target_label():
    query_response = QueryResponse(
        metric=MetricType.NODE_MEMORY_USAGE_BYTES,
        results=[Data(labels={"node_name": "a", "other": "b"})],
    )
    assert transform_labels(query_response).results[0].labels == {
        "node_name": "a",
        "other": "b",
    }