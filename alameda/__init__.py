"""Prometheus metric queries, autoscaling resource models and their reconcilers."""

__version__ = "0.1.0"