"""Endpoint, parameters and options for building metrics-server queries."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime

from alameda.metrics import Since, StringOperator, TimeRange, Timestamp, TimeSelector

API_PREFIX = "/api/v1"
EP_QUERY = "/query"
EP_QUERY_RANGE = "/query_range"

_OPERATOR_LITERALS = {
    StringOperator.EQUAL: "=",
    StringOperator.NOT_EQUAL: "!=",
}


@dataclass(frozen=True)
class FactoryOptions:
    """Address of the metrics server and the bearer token sent to it."""

    prom_addr: str = ""
    prom_auth: str = ""


def _unix_seconds(moment: datetime) -> int:
    return math.floor(moment.timestamp())


def query_endpoint(time_selector: TimeSelector | None) -> str:
    """API path that serves a query with the given time selector."""
    if isinstance(time_selector, TimeRange):
        return API_PREFIX + EP_QUERY_RANGE
    if time_selector is None or isinstance(time_selector, (Timestamp, Since)):
        return API_PREFIX + EP_QUERY
    raise TypeError(f"unsupported time selector: {type(time_selector).__name__}")


def query_parameters(time_selector: TimeSelector | None) -> dict[str, str]:
    """URL parameters that express the given time selector."""
    if isinstance(time_selector, Timestamp):
        return {"time": str(_unix_seconds(time_selector.t))}
    if isinstance(time_selector, TimeRange):
        return {
            "start": str(_unix_seconds(time_selector.start_time)),
            "end": str(_unix_seconds(time_selector.end_time)),
            "step": f"{time_selector.step.total_seconds():.0f}",
        }
    if time_selector is None or isinstance(time_selector, Since):
        return {}
    raise TypeError(f"unsupported time selector: {type(time_selector).__name__}")


def operator_literal(op: StringOperator) -> str:
    """Query-language spelling of a label comparison."""
    return _OPERATOR_LITERALS[StringOperator(op)]