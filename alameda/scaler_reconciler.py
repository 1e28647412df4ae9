"""Keeps the controlled deployments recorded in a scaler up to date."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from alameda.autoscaling import (
    AlamedaContainer,
    AlamedaDeployment,
    AlamedaPod,
    AlamedaScaler,
    namespaced_name_key,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PodInfo:
    """A running pod as seen in the cluster."""

    namespace: str
    name: str
    uid: str = ""
    containers: tuple[str, ...] = ()


@dataclass(frozen=True)
class DeploymentInfo:
    """A deployment as seen in the cluster."""

    namespace: str
    name: str
    uid: str = ""


class ScalerReconciler:
    """Reads and updates the controller status of one scaler."""

    def __init__(self, scaler: AlamedaScaler):
        self.scaler = scaler

    @property
    def _deployments(self) -> dict[str, AlamedaDeployment]:
        return self.scaler.alameda_controller.deployments or {}

    def has_alameda_deployment(self, namespace: str, name: str) -> bool:
        """Tell whether the scaler controls the named deployment."""
        return namespaced_name_key(namespace, name) in self._deployments

    def has_alameda_pod(self, namespace: str, name: str) -> bool:
        """Tell whether a controlled deployment has the named pod."""
        return any(
            deployment.namespace == namespace and pod.name == name
            for deployment in self._deployments.values()
            for pod in deployment.pods.values()
        )

    def remove_alameda_deployment(self, namespace: str, name: str) -> AlamedaScaler:
        """Stop controlling the named deployment."""
        deployments = self.scaler.alameda_controller.deployments
        if deployments is not None:
            deployments.pop(namespaced_name_key(namespace, name), None)
        return self.scaler

    def init_alameda_controller(self) -> tuple[AlamedaScaler, bool]:
        """Create the deployment table if missing; report whether it was."""
        controller = self.scaler.alameda_controller
        if controller.deployments is None:
            controller.deployments = {}
            return self.scaler, True
        return self.scaler, False

    def update_status_by_deployment(
        self, deployment: DeploymentInfo, pods: Iterable[PodInfo] = ()
    ) -> AlamedaScaler:
        """Record ``deployment`` and its ``pods`` as controlled by the scaler."""
        pods_map: dict[str, AlamedaPod] = {}
        for pod in pods:
            logger.info(
                "Pod (%s/%s) belongs to AlamedaScaler (%s/%s).",
                deployment.namespace,
                pod.name,
                self.scaler.namespace,
                self.scaler.name,
            )
            pods_map[namespaced_name_key(pod.namespace, pod.name)] = AlamedaPod(
                name=pod.name,
                uid=pod.uid,
                containers=[AlamedaContainer(name=name) for name in pod.containers],
            )

        controller = self.scaler.alameda_controller
        if controller.deployments is None:
            controller.deployments = {}
        controller.deployments[namespaced_name_key(deployment.namespace, deployment.name)] = (
            AlamedaDeployment(
                namespace=deployment.namespace,
                name=deployment.name,
                uid=deployment.uid,
                pods=pods_map,
            )
        )
        return self.scaler