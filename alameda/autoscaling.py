"""Resource model of the autoscaling API group: scalers and recommendations."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple

GROUP = "autoscaling.containers.ai"
VERSION = "v1alpha1"

RESOURCE_CPU = "cpu"
RESOURCE_MEMORY = "memory"


class RecommendationPolicy(str, Enum):
    """How aggressively resources are recommended for a scaler's pods."""

    STABLE = "stable"
    COMPACT = "compact"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            lowered = value.lower()
            for member in cls:
                if member.value == lowered:
                    return member
        return None


class _GroupResource(NamedTuple):
    group: str
    resource: str

    def __str__(self) -> str:
        if not self.group:
            return self.resource
        return f"{self.resource}.{self.group}"


def resource(name: str) -> _GroupResource:
    """Qualify a resource name with this API group."""
    return _GroupResource(group=GROUP, resource=name)


def namespaced_name_key(namespace: str, name: str) -> str:
    """Key under which an object of ``namespace`` and ``name`` is stored."""
    return f"{namespace}/{name}"


@dataclass
class ObjectMeta:
    """Identity and labels of a stored object."""

    name: str = ""
    namespace: str = ""
    uid: str = ""
    labels: dict[str, str] = field(default_factory=dict)


@dataclass
class ResourceRequirements:
    """Resource limits and requests of a container.

    CPU amounts are in millicores, memory amounts in bytes.  A mapping left
    as ``None`` has never been set.
    """

    limits: dict[str, int] | None = None
    requests: dict[str, int] | None = None


@dataclass
class AlamedaContainer:
    """A container watched by a scaler, with its recommended resources."""

    name: str
    resources: ResourceRequirements = field(default_factory=ResourceRequirements)


@dataclass
class AlamedaPod:
    """A pod watched by a scaler."""

    name: str
    uid: str = ""
    containers: list[AlamedaContainer] = field(default_factory=list)


@dataclass
class AlamedaDeployment:
    """A deployment watched by a scaler, with its pods keyed by namespaced name."""

    namespace: str
    name: str
    uid: str = ""
    pods: dict[str, AlamedaPod] = field(default_factory=dict)


@dataclass
class AlamedaController:
    """Deployments a scaler controls; ``None`` until first initialised."""

    deployments: dict[str, AlamedaDeployment] | None = None


@dataclass
class AlamedaScalerSpec:
    """Desired state of a scaler."""

    selector: dict[str, str] = field(default_factory=dict)
    enable: bool = False
    policy: RecommendationPolicy | None = None

    def __post_init__(self) -> None:
        if self.policy is not None and not isinstance(self.policy, RecommendationPolicy):
            self.policy = RecommendationPolicy(self.policy)


@dataclass
class AlamedaScaler:
    """Selects deployments whose pods get resource recommendations."""

    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: AlamedaScalerSpec = field(default_factory=AlamedaScalerSpec)
    alameda_controller: AlamedaController = field(default_factory=AlamedaController)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace


@dataclass
class AlamedaRecommendation:
    """Recommended resources for the containers of one pod."""

    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    containers: list[AlamedaContainer] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace