# alameda

A library for querying container and node metrics from a Prometheus server,
and for keeping autoscaling resource objects (scalers and resource
recommendations) up to date in memory. It uses only the standard library.

## Modules

- `alameda.metrics`: the query model. `Query` names a `MetricType`, an
  optional time selector (`Timestamp`, `TimeRange` or `Since`) and a list of
  `LabelSelector`s, each comparing a label with a value using
  `StringOperator.EQUAL` or `StringOperator.NOT_EQUAL`. Results come back as
  a `QueryResponse` holding `Data` series of `Sample`s. The supported metrics
  are container CPU usage (total and rate), container memory usage, node CPU
  utilisation (1-minute average) and node memory usage. `available_label_keys`
  lists the `LabelSelectorKey`s that apply to a metric.
- `alameda.promrequest`: `query_endpoint` picks `/api/v1/query_range` for a
  `TimeRange` and `/api/v1/query` otherwise; `query_parameters` turns a time
  selector into `time`, or `start`/`end`/`step`, in Unix seconds;
  `operator_literal` gives `=` or `!=`. `FactoryOptions` carries the server
  address and bearer token.
- `alameda.queries`: `new_query_request_factory(query, options)` returns a
  `QueryRequestFactory` whose `query_expression()`, `query_url()` and
  `build_request()` produce the PromQL expression, the full URL and a
  `urllib.request.Request`. Container queries always exclude the `POD` and
  empty container names; node queries translate `node_name` to the server's
  `node` label; a `Since` selector appends a range such as `[60s]`.
  `label_mapper` gives the label-name correspondence for a metric.
- `alameda.promresponse`: `parse_response(payload, metric)` builds a
  `Response` from a JSON document (text, bytes or an already decoded object).
  `Response.to_query_response()` handles `matrix` and `vector` results and
  renames server labels back to selector keys (for example `node` becomes
  `node_name`); other result types, or malformed data, raise
  `TransformError`.
- `alameda.prometheus`: `PrometheusClient` and `PrometheusConfig`.
  `PrometheusClient.query(query)` sends the request and returns a
  `QueryResponse`; any failure (bad request, connection error, undecodable
  reply, an `"error"` status from the server) raises `PrometheusError`.
  The client can be used as a context manager.
- `alameda.autoscaling`: dataclass models `AlamedaScaler`,
  `AlamedaRecommendation`, `AlamedaDeployment`, `AlamedaPod`,
  `AlamedaContainer`, `ResourceRequirements` and `ObjectMeta`, the
  `RecommendationPolicy` enum (`stable`, `compact`, matched case-insensitively),
  `namespaced_name_key` (`"namespace/name"`) and `resource`, which qualifies a
  resource name with the `autoscaling.containers.ai` group.
- `alameda.scaler_reconciler`: `ScalerReconciler` records deployments and
  their pods in a scaler (`update_status_by_deployment`, given a
  `DeploymentInfo` and `PodInfo`s), removes them, and answers
  `has_alameda_deployment` / `has_alameda_pod`.
- `alameda.recommendation_reconciler`: `RecommendationReconciler` applies a
  `PodRecommendation` to an `AlamedaRecommendation`. For each matching
  container it sets the CPU (millicores) and memory (bytes) limits and
  requests to the value of the latest-timed sample; samples whose value is
  not an integer are logged and skipped, and samples with no time are never
  applied.

## Configuration

`PrometheusConfig` defaults to `https://prometheus-k8s.openshift-monitoring:9091`
with certificate verification switched off (`TLSConfig(insecure_skip_verify=True)`).
If `bearer_token_file` is set, the client reads the token from that file when
it is created and sends it as `Authorization: Bearer token`. Requests time
out after 30 seconds unless another `timeout` is given.
`PrometheusConfig.validate()` raises `PrometheusError` for a URL that cannot
be parsed.

## Installing

```
pip install .
```

Install the test extra with `pip install .[test]` and run the tests with
`pytest`.

## Example

```python
from datetime import timedelta

from alameda.metrics import LabelSelector, MetricType, Query, Since, StringOperator
from alameda.prometheus import PrometheusClient, PrometheusConfig

with PrometheusClient(PrometheusConfig(url="http://localhost:9090")) as client:
    response = client.query(
        Query(
            metric=MetricType.CONTAINER_CPU_USAGE_TOTAL,
            label_selectors=[
                LabelSelector("namespace", "default", StringOperator.EQUAL),
            ],
            time_selector=Since(timedelta(seconds=60)),
        )
    )
for series in response.results:
    print(series.labels, [sample.value for sample in series.samples])
```

## What it does not do

This is a library only. It has no command-line program, runs no server, and
does not talk to the Kubernetes API: it does not watch or store scalers,
recommendations, deployments or pods. The reconcilers change the objects you
hand them in memory, and the deployments and pods they record must be
supplied by the caller. Nothing is persisted.