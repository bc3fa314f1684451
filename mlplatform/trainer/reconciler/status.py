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

import dataclasses
from datetime import datetime
from typing import Optional

from mlplatform.trainer.constants import constants
from mlplatform.trainer.types import types


def map_ray_job_status(observation: types.RayJobObservation) -> tuple[types.JobPhase, str]:
    """Map the native RayJob status to the canonical phase and its message."""

    job_status = observation.job_status
    deployment_status = observation.deployment_status

    if job_status == constants.RAYJOB_STATUS_SUCCEEDED:
        return types.JobPhase.SUCCEEDED, "RayJob completed successfully"
    if job_status == constants.RAYJOB_STATUS_FAILED:
        message = "RayJob failed"
        if observation.message:
            message += f": {observation.message}"
        return types.JobPhase.FAILED, message
    if job_status == constants.RAYJOB_STATUS_RUNNING:
        return types.JobPhase.RUNNING, f"RayJob is running (deployment: {deployment_status})"
    if deployment_status == constants.RAYJOB_DEPLOYMENT_RUNNING:
        return types.JobPhase.RUNNING, "RayJob cluster is running"
    return types.JobPhase.PENDING, f"RayJob deployment status: {deployment_status}"


def next_record(
    current: types.JobStatusRecord,
    observation: types.RayJobObservation,
    at: datetime,
) -> Optional[types.JobStatusRecord]:
    """Get the record that follows `current` after an observation.

    Phases only move forward: Pending, then Running, then a terminal phase. An
    observation that does not move the phase forward gives None.

    Args:
        current: The stored record.
        observation: The native status read from the member cluster.
        at: The time used when the native status carries no timestamps.
    """

    phase, message = map_ray_job_status(observation)
    if phase.rank <= current.phase.rank:
        return None

    start_time = current.start_time or observation.start_time or at
    completion_time = current.completion_time
    if phase.is_terminal:
        completion_time = observation.end_time or at

    cluster_replicas = dict(current.cluster_replicas)
    if observation.available_worker_replicas is not None:
        cluster_replicas[observation.cluster] = observation.available_worker_replicas

    return dataclasses.replace(
        current,
        phase=phase,
        message=message,
        start_time=start_time,
        completion_time=completion_time,
        cluster_replicas=cluster_replicas,
        target_clusters=list(current.target_clusters),
    )
