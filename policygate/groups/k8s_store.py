"""Read-only group resolver backed by the Kubernetes API.

Reads ``ClusterGroup`` custom objects through the official client. A 404 is
the only condition mapped to "not found"; every other API failure is a
transient store fault and propagates to the caller unchanged.

Usage::

    resolver = KubernetesGroupResolver.from_kubeconfig("~/.kube/config")
    GroupSpecValidator(resolver).validate_group(candidate)
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from kubernetes import client, config as k8s_config
from kubernetes.client.rest import ApiException

from policygate import config
from policygate.models import ClusterGroup, GroupSpec

logger = logging.getLogger("policygate.k8s")


class KubernetesGroupResolver:
    """Resolver over the ClusterGroups currently stored in a cluster.

    Each call is a fresh API read, so a validation sees whatever the API
    server returns at that moment, not a transactional snapshot.
    """

    def __init__(
        self,
        api: client.CustomObjectsApi,
        group: str = config.GROUP_API_GROUP,
        version: str = config.GROUP_API_VERSION,
        plural: str = config.GROUP_PLURAL,
    ) -> None:
        self.api = api
        self.group = group
        self.version = version
        self.plural = plural

    @classmethod
    def from_kubeconfig(cls, kubeconfig_path: Optional[str] = None) -> "KubernetesGroupResolver":
        """Load kubeconfig, falling back to in-cluster config."""
        try:
            k8s_config.load_kube_config(config_file=kubeconfig_path or config.DEFAULT_KUBECONFIG)
            logger.info("Loaded kubeconfig successfully")
        except Exception as e1:
            logger.warning(f"Failed to load kubeconfig: {e1}")
            try:
                k8s_config.load_incluster_config()
                logger.info("Loaded in-cluster config successfully")
            except Exception as e2:
                raise RuntimeError(
                    f"Unable to connect to Kubernetes cluster. "
                    f"kubeconfig error: {e1}. in-cluster error: {e2}"
                )
        return cls(client.CustomObjectsApi())

    def get_group(self, name: str) -> Optional[ClusterGroup]:
        try:
            obj = self.api.get_cluster_custom_object(
                self.group, self.version, self.plural, name,
            )
        except ApiException as exc:
            if exc.status == 404:
                return None
            raise
        return ClusterGroup.model_validate(obj)

    def get(self, name: str) -> Optional[GroupSpec]:
        group = self.get_group(name)
        return group.spec if group is not None else None

    def list_groups(self) -> list[ClusterGroup]:
        result: dict[str, Any] = self.api.list_cluster_custom_object(
            self.group, self.version, self.plural,
        )
        groups = [ClusterGroup.model_validate(item) for item in result.get("items", [])]
        logger.debug("Listed %d %s", len(groups), self.plural)
        return sorted(groups, key=lambda g: g.name)

    def parents_of(self, name: str) -> list[str]:
        return sorted(
            group.name for group in self.list_groups()
            if name in group.spec.child_groups
        )
