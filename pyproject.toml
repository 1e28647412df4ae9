[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "alameda"
version = "0.1.0"
description = "Prometheus metric queries and autoscaling resource models and reconcilers for Kubernetes workloads"
requires-python = ">=3.10"
dependencies = []
keywords = ["kubernetes", "prometheus", "promql", "metrics", "autoscaling", "recommendation"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Monitoring",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["alameda"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
