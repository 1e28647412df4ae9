from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlsplit

import pytest

from alameda.metrics import LabelSelector, MetricType, Query, Since, StringOperator, TimeRange
from alameda.promrequest import FactoryOptions
from alameda.queries import (
    LabelMapper,
    QueryRequestFactory,
    label_mapper,
    new_query_request_factory,
)

ADDR = "http://localhost:9090"

POD_SELECTORS = [
    LabelSelector(key="namespace", value="default", op=StringOperator.EQUAL),
    LabelSelector(key="pod_name", value="docker-registry-1-mbjnw", op=StringOperator.EQUAL),
]
NODE_SELECTORS = [
    LabelSelector(key="node_name", value="node-a.example.com", op=StringOperator.EQUAL),
]


def _factory(metric, selectors=(), time_selector=None, auth=""):
    query = Query(metric=metric, time_selector=time_selector, label_selectors=list(selectors))
    return new_query_request_factory(query, FactoryOptions(prom_addr=ADDR, prom_auth=auth))


def test_container_expression_appends_default_selectors():
    factory = _factory(MetricType.CONTAINER_CPU_USAGE_TOTAL)
    assert factory.query_expression() == (
        'container_cpu_usage_seconds_total{container_name != "POD",container_name != ""}'
    )


@pytest.mark.parametrize(
    "metric, name",
    [
        (MetricType.CONTAINER_CPU_USAGE_TOTAL, "container_cpu_usage_seconds_total"),
        (
            MetricType.CONTAINER_CPU_USAGE_TOTAL_RATE,
            "namespace_pod_name_container_name:container_cpu_usage_seconds_total:sum_rate",
        ),
        (MetricType.CONTAINER_MEMORY_USAGE, "container_memory_usage_bytes"),
    ],
)
def test_container_expression_keeps_keys_and_order(metric, name):
    expression = _factory(metric, POD_SELECTORS).query_expression()
    assert expression.startswith(name + "{")
    assert expression.endswith("}")
    body = expression[len(name) + 1 : -1]
    assert body.split(",") == [
        'namespace = "default"',
        'pod_name = "docker-registry-1-mbjnw"',
        'container_name != "POD"',
        'container_name != ""',
    ]


def test_node_cpu_expression_translates_node_key():
    expression = _factory(MetricType.NODE_CPU_USAGE_SECONDS_AVG1M, NODE_SELECTORS).query_expression()
    assert expression == 'node:node_cpu_utilisation:avg1m{node = "node-a.example.com"}'


def test_node_expression_unknown_key_becomes_empty():
    selectors = [LabelSelector(key="pod_name", value="x", op=StringOperator.NOT_EQUAL)]
    expression = _factory(MetricType.NODE_CPU_USAGE_SECONDS_AVG1M, selectors).query_expression()
    assert expression.endswith('{ != "x"}')


def test_node_memory_expression_subtracts_available():
    expression = _factory(MetricType.NODE_MEMORY_USAGE_BYTES, NODE_SELECTORS).query_expression()
    total, available = expression.split(" - ")
    assert total.startswith("node:node_memory_bytes_total:sum{")
    assert available.startswith("node:node_memory_bytes_available:sum{")
    assert total[total.index("{") :] == available[available.index("{") :]


@pytest.mark.parametrize("metric", list(MetricType))
def test_since_adds_range_duration(metric):
    without = _factory(metric).query_expression()
    with_since = _factory(metric, time_selector=Since(timedelta(seconds=60))).query_expression()
    assert with_since == without + "[60s]"


@pytest.mark.parametrize("metric", list(MetricType))
def test_query_url_carries_expression(metric):
    factory = _factory(metric, NODE_SELECTORS if metric >= 3 else POD_SELECTORS)
    parts = urlsplit(factory.query_url())
    assert f"{parts.scheme}://{parts.netloc}" == ADDR
    assert parts.path == "/api/v1/query"
    assert parse_qs(parts.query) == {"query": [factory.query_expression()]}


def test_query_url_for_time_range():
    start = datetime.fromtimestamp(1543286478, timezone.utc)
    selector = TimeRange(start, start + timedelta(seconds=30), timedelta(seconds=30))
    factory = _factory(MetricType.CONTAINER_MEMORY_USAGE, POD_SELECTORS, selector)
    parts = urlsplit(factory.query_url())
    assert parts.path == "/api/v1/query_range"
    params = parse_qs(parts.query)
    assert params["start"] == ["1543286478"]
    assert int(params["end"][0]) - int(params["start"][0]) == 30
    assert params["step"] == ["30"]
    assert params["query"] == [factory.query_expression()]


def test_query_url_parameters_are_sorted():
    start = datetime.fromtimestamp(1543286478, timezone.utc)
    selector = TimeRange(start, start, timedelta(seconds=30))
    query_text = urlsplit(_factory(MetricType.CONTAINER_MEMORY_USAGE, time_selector=selector).query_url()).query
    names = [item.split("=", 1)[0] for item in query_text.split("&")]
    assert names == sorted(names)


def test_query_url_rejects_bad_address():
    query = Query(metric=MetricType.CONTAINER_MEMORY_USAGE)
    factory = new_query_request_factory(query, FactoryOptions(prom_addr="http://[::1"))
    with pytest.raises(ValueError, match="parse request url failed"):
        factory.query_url()


def test_build_request_without_token():
    factory = _factory(MetricType.CONTAINER_CPU_USAGE_TOTAL, POD_SELECTORS)
    request = factory.build_request()
    assert request.get_method() == "GET"
    assert request.full_url == factory.query_url()
    assert not request.has_header("Authorization")


def test_build_request_with_token():
    factory = _factory(MetricType.NODE_MEMORY_USAGE_BYTES, NODE_SELECTORS, auth="token")
    request = factory.build_request()
    assert request.get_header("Authorization") == "Bearer token"


def test_new_factory_defaults_options():
    query = Query(metric=MetricType.NODE_MEMORY_USAGE_BYTES)
    factory = new_query_request_factory(query)
    assert factory.options == FactoryOptions()
    assert factory.query is query


def test_unknown_metric_is_rejected():
    with pytest.raises(ValueError):
        new_query_request_factory(Query(metric=99))
    with pytest.raises(ValueError):
        QueryRequestFactory(Query(metric=99)).query_expression()


@pytest.mark.parametrize("metric", list(MetricType))
def test_label_mapper_pairs_match(metric):
    mapper = label_mapper(metric)
    assert isinstance(mapper, LabelMapper)
    assert len(mapper.label_selector_keys) == len(mapper.prometheus_labels)


def test_label_mapper_values():
    assert label_mapper(MetricType.NODE_CPU_USAGE_SECONDS_AVG1M) == LabelMapper(
        label_selector_keys=("node_name",), prometheus_labels=("node",)
    )
    container = label_mapper(MetricType.CONTAINER_CPU_USAGE_TOTAL)
    assert container.label_selector_keys == container.prometheus_labels
    assert container.label_selector_keys == ("namespace", "pod_name", "container_name")