"""Query expressions and HTTP requests for each supported metric."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping
from urllib.parse import urlencode, urlsplit, urlunsplit
from urllib.request import Request

from alameda.metrics import (
    LabelSelector,
    LabelSelectorKey,
    MetricType,
    Query,
    Since,
    StringOperator,
)
from alameda.promrequest import (
    FactoryOptions,
    operator_literal,
    query_endpoint,
    query_parameters,
)


@dataclass(frozen=True)
class LabelMapper:
    """Pairs backend-independent label keys with the server's label names."""

    label_selector_keys: tuple[str, ...]
    prometheus_labels: tuple[str, ...]


@dataclass(frozen=True)
class _QuerySpec:
    metric_names: tuple[str, ...]
    mapper: LabelMapper
    default_selectors: tuple[LabelSelector, ...] = ()
    key_translation: Mapping[str, str] | None = None


_CONTAINER_MAPPER = LabelMapper(
    label_selector_keys=(
        LabelSelectorKey.NAMESPACE.value,
        LabelSelectorKey.POD_NAME.value,
        LabelSelectorKey.CONTAINER_NAME.value,
    ),
    prometheus_labels=("namespace", "pod_name", "container_name"),
)
_NODE_MAPPER = LabelMapper(
    label_selector_keys=(LabelSelectorKey.NODE_NAME.value,),
    prometheus_labels=("node",),
)
_CONTAINER_DEFAULT_SELECTORS = (
    LabelSelector(key="container_name", value="POD", op=StringOperator.NOT_EQUAL),
    LabelSelector(key="container_name", value="", op=StringOperator.NOT_EQUAL),
)
_NODE_KEY_TRANSLATION = {LabelSelectorKey.NODE_NAME.value: "node"}

_SPECS = {
    MetricType.CONTAINER_CPU_USAGE_TOTAL: _QuerySpec(
        metric_names=("container_cpu_usage_seconds_total",),
        mapper=_CONTAINER_MAPPER,
        default_selectors=_CONTAINER_DEFAULT_SELECTORS,
    ),
    MetricType.CONTAINER_CPU_USAGE_TOTAL_RATE: _QuerySpec(
        metric_names=(
            "namespace_pod_name_container_name:container_cpu_usage_seconds_total:sum_rate",
        ),
        mapper=_CONTAINER_MAPPER,
        default_selectors=_CONTAINER_DEFAULT_SELECTORS,
    ),
    MetricType.CONTAINER_MEMORY_USAGE: _QuerySpec(
        metric_names=("container_memory_usage_bytes",),
        mapper=_CONTAINER_MAPPER,
        default_selectors=_CONTAINER_DEFAULT_SELECTORS,
    ),
    MetricType.NODE_CPU_USAGE_SECONDS_AVG1M: _QuerySpec(
        metric_names=("node:node_cpu_utilisation:avg1m",),
        mapper=_NODE_MAPPER,
        key_translation=_NODE_KEY_TRANSLATION,
    ),
    MetricType.NODE_MEMORY_USAGE_BYTES: _QuerySpec(
        metric_names=(
            "node:node_memory_bytes_total:sum",
            "node:node_memory_bytes_available:sum",
        ),
        mapper=_NODE_MAPPER,
        key_translation=_NODE_KEY_TRANSLATION,
    ),
}


def _spec_for(metric: int) -> _QuerySpec:
    try:
        return _SPECS[MetricType(metric)]
    except ValueError:
        raise ValueError(f"no query is defined for metric type {metric}") from None


@dataclass
class QueryRequestFactory:
    """Builds the request that asks the metrics server for one query."""

    query: Query
    options: FactoryOptions = field(default_factory=FactoryOptions)

    @property
    def _spec(self) -> _QuerySpec:
        return _spec_for(self.query.metric)

    def query_expression(self) -> str:
        """The query-language expression for the query."""
        spec = self._spec
        selectors = list(self.query.label_selectors) + list(spec.default_selectors)
        parts = []
        for selector in selectors:
            key = selector.key
            if spec.key_translation is not None:
                key = spec.key_translation.get(key, "")
            parts.append(f'{key} {operator_literal(selector.op)} "{selector.value}"')
        selector_text = ",".join(parts)
        expression = " - ".join(f"{name}{{{selector_text}}}" for name in spec.metric_names)
        if isinstance(self.query.time_selector, Since):
            seconds = self.query.time_selector.duration.total_seconds()
            expression += f"[{seconds:.0f}s]"
        return expression

    def query_url(self) -> str:
        """Full URL of the query, parameters included."""
        selector = self.query.time_selector
        params = query_parameters(selector)
        params["query"] = self.query_expression()
        try:
            parts = urlsplit(self.options.prom_addr + query_endpoint(selector))
        except ValueError as exc:
            raise ValueError(f"parse request url failed: {exc}") from exc
        return urlunsplit(parts._replace(query=urlencode(sorted(params.items()))))

    def build_request(self) -> Request:
        """An HTTP GET request for the query, authorised if a token is set."""
        request = Request(self.query_url(), method="GET")
        if self.options.prom_auth:
            request.add_header("Authorization", f"Bearer {self.options.prom_auth}")
        return request


def new_query_request_factory(
    query: Query, options: FactoryOptions | None = None
) -> QueryRequestFactory:
    """Factory for ``query``; fails if its metric has no query defined."""
    _spec_for(query.metric)
    return QueryRequestFactory(query=query, options=options or FactoryOptions())


def label_mapper(metric: MetricType) -> LabelMapper:
    """Label name correspondence used for ``metric``."""
    return _spec_for(metric).mapper