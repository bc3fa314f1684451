# Copyright 2026 The ML Platform Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Typed builders for the cluster resource documents.

The converter and the placement planner compose these builders. They are serialized
into plain Kubernetes documents by `to_dict()` only at the submission boundary.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from mlplatform.trainer.constants import constants


@dataclass
class ResourceMeta:
    name: str
    namespace: str
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        metadata: dict[str, Any] = {"name": self.name, "namespace": self.namespace}
        if self.labels:
            metadata["labels"] = dict(self.labels)
        if self.annotations:
            metadata["annotations"] = dict(self.annotations)
        return metadata


@dataclass
class ContainerSpec:
    """A container of a Ray head or worker Pod.

    Args:
        name (`str`): The container name.
        image (`str`): The container image.
        requests (`dict[str, str]`): The resource requests.
        limits (`dict[str, str]`): The resource limits.
        ports (`list[tuple[int, str]]`): The container ports as (port, name) pairs.
        volume_mounts (`dict[str, str]`): Volume name to mount path.
    """

    name: str
    image: str
    requests: dict[str, str] = field(default_factory=dict)
    limits: dict[str, str] = field(default_factory=dict)
    ports: list[tuple[int, str]] = field(default_factory=list)
    volume_mounts: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        container: dict[str, Any] = {
            "name": self.name,
            "image": self.image,
            "resources": {"limits": dict(self.limits), "requests": dict(self.requests)},
        }
        if self.ports:
            container["ports"] = [{"containerPort": p, "name": n} for p, n in self.ports]
        if self.volume_mounts:
            container["volumeMounts"] = [
                {"mountPath": path, "name": name} for name, path in self.volume_mounts.items()
            ]
        return container


@dataclass
class GroupSpec:
    """A Ray head group or worker group.

    The head group has no replica fields. A worker group sets `group_name` and the
    replica bounds.
    """

    container: ContainerSpec
    claim_name: Optional[str] = None
    pod_annotations: dict[str, str] = field(default_factory=dict)
    ray_start_params: dict[str, str] = field(default_factory=dict)
    group_name: Optional[str] = None
    replicas: Optional[int] = None
    min_replicas: Optional[int] = None
    max_replicas: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        pod_spec: dict[str, Any] = {"containers": [self.container.to_dict()]}
        if self.claim_name:
            pod_spec["volumes"] = [
                {
                    "name": constants.RESULT_STORAGE_VOLUME,
                    "persistentVolumeClaim": {"claimName": self.claim_name},
                }
            ]

        template: dict[str, Any] = {"spec": pod_spec}
        if self.pod_annotations:
            template["metadata"] = {"annotations": dict(self.pod_annotations)}

        group: dict[str, Any] = {}
        if self.group_name is not None:
            group["groupName"] = self.group_name
            group["replicas"] = self.replicas
            group["minReplicas"] = self.min_replicas
            group["maxReplicas"] = self.max_replicas
        group["rayStartParams"] = dict(self.ray_start_params)
        group["template"] = template
        return group


@dataclass
class RayJobResource:
    """The distributed training custom resource (a KubeRay RayJob)."""

    metadata: ResourceMeta
    entrypoint: str
    runtime_env_yaml: str
    head_group: GroupSpec
    worker_groups: list[GroupSpec]
    ray_version: str = constants.DEFAULT_RAY_VERSION

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    def to_dict(self) -> dict[str, Any]:
        return {
            "apiVersion": constants.RAY_API_VERSION,
            "kind": constants.RAYJOB_KIND,
            "metadata": self.metadata.to_dict(),
            "spec": {
                "entrypoint": self.entrypoint,
                "runtimeEnvYAML": self.runtime_env_yaml,
                "rayClusterSpec": {
                    "rayVersion": self.ray_version,
                    "headGroupSpec": self.head_group.to_dict(),
                    "workerGroupSpecs": [g.to_dict() for g in self.worker_groups],
                },
            },
        }


@dataclass
class StorageClaim:
    """The result storage PersistentVolumeClaim."""

    metadata: ResourceMeta
    storage: str
    access_modes: list[str] = field(default_factory=lambda: [constants.PVC_ACCESS_MODE])

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    def to_dict(self) -> dict[str, Any]:
        return {
            "apiVersion": "v1",
            "kind": "PersistentVolumeClaim",
            "metadata": self.metadata.to_dict(),
            "spec": {
                "accessModes": list(self.access_modes),
                "resources": {"requests": {"storage": self.storage}},
            },
        }


@dataclass
class PlacementDocument:
    """The Karmada PropagationPolicy that places a RayJob on member clusters.

    An empty `cluster_names` list leaves cluster affinity unconstrained, which Karmada
    resolves to any ready member cluster.
    """

    metadata: ResourceMeta
    resource_name: str
    cluster_names: list[str] = field(default_factory=list)
    resource_api_version: str = constants.RAY_API_VERSION
    resource_kind: str = constants.RAYJOB_KIND
    replica_scheduling_type: str = constants.REPLICA_SCHEDULING_DIVIDED

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    def to_dict(self) -> dict[str, Any]:
        placement: dict[str, Any] = {}
        if self.cluster_names:
            placement["clusterAffinity"] = {"clusterNames": list(self.cluster_names)}
        placement["replicaScheduling"] = {"replicaSchedulingType": self.replica_scheduling_type}

        return {
            "apiVersion": constants.POLICY_API_VERSION,
            "kind": constants.PROPAGATION_POLICY_KIND,
            "metadata": self.metadata.to_dict(),
            "spec": {
                "resourceSelectors": [
                    {
                        "apiVersion": self.resource_api_version,
                        "kind": self.resource_kind,
                        "name": self.resource_name,
                    }
                ],
                "placement": placement,
            },
        }
