"""Client that runs metric queries against a metrics server over HTTP."""

from __future__ import annotations

import logging
import ssl
from dataclasses import dataclass, field
from pathlib import Path
from urllib.error import HTTPError, URLError
from urllib.parse import urlsplit
from urllib.request import Request, urlopen

from alameda.metrics import Query, QueryResponse
from alameda.promrequest import FactoryOptions
from alameda.promresponse import STATUS_ERROR, TransformError, parse_response
from alameda.queries import new_query_request_factory

logger = logging.getLogger(__name__)

DEFAULT_URL = "https://prometheus-k8s.openshift-monitoring:9091"
REQUEST_TIMEOUT = 30.0


class PrometheusError(Exception):
    """A query to the metrics server failed."""


@dataclass
class TLSConfig:
    """TLS settings for the connection to the server."""

    insecure_skip_verify: bool = False


@dataclass
class PrometheusConfig:
    """Where the metrics server is and how to authenticate to it."""

    url: str = DEFAULT_URL
    bearer_token_file: str = ""
    tls_config: TLSConfig | None = field(
        default_factory=lambda: TLSConfig(insecure_skip_verify=True)
    )

    def validate(self) -> None:
        """Raise :class:`PrometheusError` if the URL cannot be parsed."""
        if any(ord(ch) < 0x20 or ord(ch) == 0x7F for ch in self.url):
            raise PrometheusError(
                "prometheus config validate failed: invalid control character in URL"
            )
        try:
            urlsplit(self.url)
        except ValueError as exc:
            raise PrometheusError(f"prometheus config validate failed: {exc}") from exc


class PrometheusClient:
    """Sends metric queries to the server and decodes the answers."""

    def __init__(self, config: PrometheusConfig, *, timeout: float = REQUEST_TIMEOUT):
        self.config = config
        self.timeout = timeout
        self._bearer_token = ""
        if config.bearer_token_file:
            try:
                self._bearer_token = Path(config.bearer_token_file).read_text()
            except OSError as exc:
                logger.error("open bearer token file for prometheus failed: %s", exc)
                raise PrometheusError("open bearer token file for prometheus failed") from exc
        self._ssl_context = self._make_ssl_context()

    @property
    def base_url(self) -> str:
        return self.config.url

    @property
    def bearer_token(self) -> str:
        return self._bearer_token

    def _make_ssl_context(self) -> ssl.SSLContext | None:
        try:
            scheme = urlsplit(self.config.url).scheme
        except ValueError as exc:
            raise PrometheusError(f"invalid prometheus url: {exc}") from exc
        if scheme.lower() != "https":
            return None
        context = ssl.create_default_context()
        tls = self.config.tls_config
        if tls is not None and tls.insecure_skip_verify:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        return context

    def connect(self) -> None:
        """Nothing to set up: every query opens its own connection."""

    def close(self) -> None:
        """Nothing to release."""

    def __enter__(self) -> PrometheusClient:
        self.connect()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def query(self, query: Query) -> QueryResponse:
        """Run ``query`` and return its series."""
        options = FactoryOptions(prom_addr=self.base_url, prom_auth=self.bearer_token)
        try:
            request = new_query_request_factory(query, options).build_request()
        except ValueError as exc:
            logger.error("build service request failed: %s", exc)
            raise PrometheusError(f"Query: {exc}") from exc

        body = self._send(request)
        try:
            response = parse_response(body, query.metric)
        except TransformError as exc:
            logger.error("decode http response failed: %s", exc)
            raise PrometheusError(f"Query: decode http response failed: {exc}") from exc

        if response.status == STATUS_ERROR:
            logger.error("get error response from prometheus: %s", response.error)
            raise PrometheusError(f"Query: {response.error}")

        try:
            return response.to_query_response()
        except TransformError as exc:
            logger.error("transform response failed: %s", exc)
            raise PrometheusError(f"Query: {exc}") from exc

    def _send(self, request: Request) -> bytes:
        try:
            with urlopen(request, timeout=self.timeout, context=self._ssl_context) as reply:
                return reply.read()
        except HTTPError as exc:
            if exc.fp is None:
                raise PrometheusError(f"send http request to prometheus failed: {exc}") from exc
            try:
                return exc.read()
            finally:
                exc.close()
        except (URLError, OSError) as exc:
            logger.error("send http request to prometheus failed: %s", exc)
            raise PrometheusError(f"send http request to prometheus failed: {exc}") from exc