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

from mlplatform.trainer.constants import constants
from mlplatform.trainer.types.resources import PlacementDocument, ResourceMeta


def get_placement_name(job_name: str) -> str:
    return f"{job_name}{constants.PROPAGATION_POLICY_SUFFIX}"


def plan(job_name: str, namespace: str, target_clusters: list[str]) -> PlacementDocument:
    """Plan which member clusters run the RayJob of a training job.

    Args:
        job_name: The RayJob name the placement selects.
        namespace: The namespace of the RayJob.
        target_clusters: The requested member clusters, copied verbatim. An empty list
            leaves the placement unconstrained, so the control plane may pick any ready
            member cluster.

    Returns:
        The PropagationPolicy that splits the RayJob replicas across the matched clusters.
    """

    return PlacementDocument(
        metadata=ResourceMeta(
            name=get_placement_name(job_name),
            namespace=namespace,
            labels={
                constants.JOB_ID_LABEL: job_name,
                constants.MANAGED_BY_LABEL: constants.MANAGED_BY,
            },
        ),
        resource_name=job_name,
        cluster_names=list(target_clusters),
    )


def get_cluster_names(placement: dict) -> list[str]:
    """Get the cluster names of a PropagationPolicy object. Empty when unconstrained."""
    spec = placement.get("spec") or {}
    affinity = (spec.get("placement") or {}).get("clusterAffinity") or {}
    return list(affinity.get("clusterNames") or [])
