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

import json
import logging
import multiprocessing
from typing import Any, Optional

from kubernetes import client

import mlplatform.common.constants as common_constants
import mlplatform.trainer.backends.karmada.utils as utils
from mlplatform.trainer.constants import constants
from mlplatform.trainer.store.base import StatusStore
from mlplatform.trainer.types import types

logger = logging.getLogger(__name__)


class ClusterStatusStore(StatusStore):
    """Keeps the records as annotations of the RayJobs in the control plane.

    The engine stays stateless: a restarted engine recovers every record by listing the
    RayJobs it manages. A RayJob without status annotations is Pending, so `create` does
    not write anything. Records of jobs whose RayJob does not exist are not stored.

    A record lives only as long as its RayJob. A job rejected on submit leaves no Failed
    record, and a deleted job is written as Stopped just before its RayJob is removed, so
    its status lookup afterwards finds no record instead of Stopped.
    """

    def __init__(
        self,
        custom_api: client.CustomObjectsApi,
        timeout: int = common_constants.DEFAULT_TIMEOUT,
    ):
        self.custom_api = custom_api
        self.timeout = timeout

    def get(self, job_id: str, namespace: str) -> Optional[types.JobStatusRecord]:
        try:
            thread = self.custom_api.get_namespaced_custom_object(
                constants.RAY_GROUP,
                constants.RAY_VERSION,
                namespace,
                constants.RAYJOB_PLURAL,
                job_id,
                async_req=True,
            )
            rayjob = thread.get(self.timeout)
        except multiprocessing.TimeoutError as e:
            raise TimeoutError(
                f"Timeout to get {constants.RAYJOB_KIND}: {namespace}/{job_id}"
            ) from e
        except Exception as e:
            if utils.is_not_found(e):
                return None
            raise RuntimeError(
                f"Failed to get {constants.RAYJOB_KIND}: {namespace}/{job_id}"
            ) from e

        return get_record_from_rayjob(rayjob)

    def create(self, record: types.JobStatusRecord):
        logger.debug(f"Job {record.namespace}/{record.job_id} starts as Pending")

    def set(self, record: types.JobStatusRecord):
        body = {"metadata": {"annotations": get_status_annotations(record)}}
        try:
            self.custom_api.patch_namespaced_custom_object(
                constants.RAY_GROUP,
                constants.RAY_VERSION,
                record.namespace,
                constants.RAYJOB_PLURAL,
                record.job_id,
                body,
                async_req=True,
            ).get(self.timeout)
        except multiprocessing.TimeoutError as e:
            raise TimeoutError(
                f"Timeout to update {constants.RAYJOB_KIND}: {record.namespace}/{record.job_id}"
            ) from e
        except Exception as e:
            if utils.is_not_found(e):
                logger.warning(
                    f"{constants.RAYJOB_KIND} {record.namespace}/{record.job_id} not found, "
                    f"status {record.phase.value} is not stored"
                )
                return
            raise RuntimeError(
                f"Failed to update {constants.RAYJOB_KIND}: {record.namespace}/{record.job_id}"
            ) from e

    def list_jobs(self, namespace: Optional[str] = None) -> list[types.JobStatusRecord]:
        label_selector = f"{constants.MANAGED_BY_LABEL}={constants.MANAGED_BY}"
        try:
            if namespace is None:
                thread = self.custom_api.list_cluster_custom_object(
                    constants.RAY_GROUP,
                    constants.RAY_VERSION,
                    constants.RAYJOB_PLURAL,
                    label_selector=label_selector,
                    async_req=True,
                )
            else:
                thread = self.custom_api.list_namespaced_custom_object(
                    constants.RAY_GROUP,
                    constants.RAY_VERSION,
                    namespace,
                    constants.RAYJOB_PLURAL,
                    label_selector=label_selector,
                    async_req=True,
                )
            rayjob_list = thread.get(self.timeout)
        except multiprocessing.TimeoutError as e:
            raise TimeoutError(f"Timeout to list {constants.RAYJOB_KIND}s") from e
        except Exception as e:
            raise RuntimeError(f"Failed to list {constants.RAYJOB_KIND}s") from e

        return [get_record_from_rayjob(r) for r in (rayjob_list or {}).get("items") or []]


def get_status_annotations(record: types.JobStatusRecord) -> dict[str, Optional[str]]:
    # A None value removes the annotation in a merge patch.
    return {
        constants.PHASE_ANNOTATION: record.phase.value,
        constants.MESSAGE_ANNOTATION: record.message,
        constants.START_TIME_ANNOTATION: (
            record.start_time.isoformat() if record.start_time else None
        ),
        constants.COMPLETION_TIME_ANNOTATION: (
            record.completion_time.isoformat() if record.completion_time else None
        ),
        constants.CLUSTER_REPLICAS_ANNOTATION: json.dumps(record.cluster_replicas, sort_keys=True),
        constants.TARGET_CLUSTERS_ANNOTATION: json.dumps(record.target_clusters),
    }


def get_record_from_rayjob(rayjob: dict[str, Any]) -> types.JobStatusRecord:
    """Get the JobStatusRecord from the status annotations of a RayJob."""

    metadata = rayjob.get("metadata") or {}
    annotations = metadata.get("annotations") or {}

    phase = annotations.get(constants.PHASE_ANNOTATION)
    try:
        job_phase = types.JobPhase(phase) if phase else types.JobPhase.PENDING
    except ValueError:
        logger.warning(f"Unknown phase {phase!r} of {constants.RAYJOB_KIND} {metadata.get('name')}")
        job_phase = types.JobPhase.PENDING

    return types.JobStatusRecord(
        job_id=metadata.get("name", ""),
        namespace=metadata.get("namespace", common_constants.DEFAULT_NAMESPACE),
        phase=job_phase,
        message=annotations.get(constants.MESSAGE_ANNOTATION, ""),
        start_time=utils.parse_time(annotations.get(constants.START_TIME_ANNOTATION)),
        completion_time=utils.parse_time(annotations.get(constants.COMPLETION_TIME_ANNOTATION)),
        cluster_replicas=_load_json(annotations.get(constants.CLUSTER_REPLICAS_ANNOTATION), {}),
        target_clusters=_load_json(annotations.get(constants.TARGET_CLUSTERS_ANNOTATION), []),
        created_at=utils.parse_time(metadata.get("creationTimestamp")),
    )


def _load_json(value: Optional[str], default: Any) -> Any:
    if not value:
        return default
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return default
