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

from datetime import datetime
from typing import Any, Optional

from kubernetes.client.rest import ApiException

from mlplatform.trainer.constants import constants
from mlplatform.trainer.types import types


def is_not_found(e: Exception) -> bool:
    return isinstance(e, ApiException) and e.status == 404


def is_conflict(e: Exception) -> bool:
    return isinstance(e, ApiException) and e.status == 409


def get_error_reason(e: Exception) -> str:
    """Get a one-line reason of an API error, suitable for a status message."""
    if isinstance(e, ApiException):
        return f"({e.status}) {e.reason}"
    return str(e) or type(e).__name__


def get_rayjob_proxy_path(cluster: str, namespace: str, name: str) -> str:
    return constants.RAYJOB_PROXY_PATH.format(cluster=cluster, namespace=namespace, name=name)


def get_core_resource_proxy_path(cluster: str, namespace: str, resource: str) -> str:
    return constants.CORE_RESOURCE_PROXY_PATH.format(
        cluster=cluster, namespace=namespace, resource=resource
    )


def parse_time(value: Optional[str]) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp of a Kubernetes object. None when unset or malformed."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return None


def get_ray_job_observation(cluster: str, rayjob: dict[str, Any]) -> types.RayJobObservation:
    """Get the observation from a RayJob object read from a member cluster."""

    status = rayjob.get("status") or {}
    ray_cluster_status = status.get("rayClusterStatus") or {}
    replicas = ray_cluster_status.get("availableWorkerReplicas")

    return types.RayJobObservation(
        cluster=cluster,
        job_status=status.get("jobStatus") or "",
        deployment_status=status.get("jobDeploymentStatus") or "",
        message=status.get("message") or "",
        start_time=parse_time(status.get("startTime")),
        end_time=parse_time(status.get("endTime")),
        available_worker_replicas=int(replicas) if replicas is not None else None,
    )


def get_member_cluster(cluster: dict[str, Any]) -> types.MemberCluster:
    """Get the MemberCluster from a Karmada Cluster object.

    A cluster is ready only when its Ready condition has status True.
    """

    metadata = cluster.get("metadata") or {}
    labels = metadata.get("labels") or {}
    conditions = (cluster.get("status") or {}).get("conditions") or []

    ready = any(
        c.get("type") == constants.CLUSTER_READY_CONDITION and c.get("status") == "True"
        for c in conditions
    )

    return types.MemberCluster(
        name=metadata.get("name", ""),
        ready=ready,
        region=labels.get(constants.CLUSTER_REGION_LABEL),
        zone=labels.get(constants.CLUSTER_ZONE_LABEL),
    )
