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
import logging
import time
from typing import Any, Optional, Union

from mlplatform.trainer.backends.karmada import placement as placement_planner
from mlplatform.trainer.backends.karmada.backend import KarmadaBackend
from mlplatform.trainer.backends.karmada.types import KarmadaBackendConfig
from mlplatform.trainer.constants import constants
from mlplatform.trainer.converter import converter
from mlplatform.trainer.errors import JobNotFoundError, SubmissionError
from mlplatform.trainer.reconciler.reconciler import StatusReconciler
from mlplatform.trainer.reconciler.types import ReconcilerConfig
from mlplatform.trainer.store.base import StatusStore, now
from mlplatform.trainer.store.cluster import ClusterStatusStore
from mlplatform.trainer.store.database import DatabaseStatusStore
from mlplatform.trainer.store.memory import InMemoryStatusStore
from mlplatform.trainer.types import types

logger = logging.getLogger(__name__)


class TrainerClient:
    def __init__(
        self,
        backend_config: Optional[KarmadaBackendConfig] = None,
        store: Optional[Union[StatusStore, str]] = None,
        reconciler_config: Optional[ReconcilerConfig] = None,
    ):
        """Initialize a training job client for a Karmada federation.

        Args:
            backend_config: Access to the Karmada control plane. Defaults to the current
                kube-config context.
            store: The job status store, or its name: `memory` keeps the records in
                process, `cluster` keeps them as annotations of the RayJobs, and any
                other value is used as a SQLAlchemy database URL. Defaults to the
                `STATUS_STORE` env, else `memory`.
            reconciler_config: Scheduling of the status reconciler.

        Raises:
            ValueError: Invalid backend configuration.
        """
        if backend_config is None:
            backend_config = KarmadaBackendConfig()
        if not isinstance(backend_config, KarmadaBackendConfig):
            raise ValueError("Invalid backend config '{}'".format(backend_config))

        self.backend = KarmadaBackend(backend_config)
        self.store = self.__get_store(store or constants.DEFAULT_STATUS_STORE)
        self.reconciler = StatusReconciler(self.backend, self.store, reconciler_config)

    def submit_job(
        self,
        spec: Union[types.TrainingJobSpec, dict[str, Any]],
        job_id: Optional[str] = None,
    ) -> types.JobStatusRecord:
        """Submit a training job to the member clusters.

        The job is converted into a RayJob, an optional result storage claim and a
        placement that selects the target clusters. An empty target cluster list lets the
        control plane schedule the job on any ready member cluster.

        Args:
            spec: The training job spec, or its camelCase request body.
            job_id: The job ID, used as the RayJob name. Defaults to the job name.

        Returns:
            The Pending status record of the job. A job ID that is already recorded is not
            submitted again and its current record is returned unchanged.

        Raises:
            ValidationError: The job spec is malformed. Nothing is submitted.
            SubmissionError: The control plane rejected the job. The job is recorded as
                Failed with the rejection as its message.
        """
        if isinstance(spec, dict):
            spec = types.TrainingJobSpec.from_dict(spec)

        resource, claim = converter.convert(spec, job_id, self.backend.namespace)
        placement = placement_planner.plan(resource.name, resource.namespace, spec.target_clusters)

        existing = self.store.get(resource.name, resource.namespace)
        if existing is not None:
            logger.debug(
                f"Job {resource.namespace}/{resource.name} already exists "
                f"with status {existing.phase.value}"
            )
            return existing

        record = types.JobStatusRecord(
            job_id=resource.name,
            namespace=resource.namespace,
            message="Job submitted",
            target_clusters=list(spec.target_clusters),
        )
        self.store.create(record)

        try:
            self.backend.submit(resource, claim, placement)
        except SubmissionError as e:
            failed = dataclasses.replace(
                record, phase=types.JobPhase.FAILED, message=str(e), completion_time=now()
            )
            self.store.set(failed)
            raise

        logger.debug(f"Job {resource.namespace}/{resource.name} has been submitted")

        return self.store.get(record.job_id, record.namespace) or record

    def delete_job(self, job_id: str, namespace: Optional[str] = None):
        """Delete the job from the member clusters. Deleting a missing job is not an error.

        A job that has not finished is recorded as Stopped. The result storage claim is
        kept.

        Args:
            job_id: The job ID.
            namespace: The job namespace. Defaults to the backend namespace.
        """
        namespace = namespace or self.backend.namespace

        record = self.store.get(job_id, namespace)
        if record is not None and not record.is_terminal:
            stopped = dataclasses.replace(
                record,
                phase=types.JobPhase.STOPPED,
                message="Job stopped by user",
                completion_time=now(),
            )
            if self.store.advance(stopped):
                logger.info(
                    f"Job {namespace}/{job_id} status changed: "
                    f"{record.phase.value} -> {stopped.phase.value}"
                )

        self.backend.delete(job_id, namespace)

    def get_job_status(self, job_id: str, namespace: Optional[str] = None) -> types.JobStatusRecord:
        """Get the last reconciled status of the job.

        Args:
            job_id: The job ID.
            namespace: The job namespace. Defaults to the backend namespace.

        Raises:
            JobNotFoundError: No record exists for the job.
        """
        namespace = namespace or self.backend.namespace
        record = self.store.get(job_id, namespace)
        if record is None:
            raise JobNotFoundError(f"Job {namespace}/{job_id} not found")
        return record

    def list_jobs(self, namespace: Optional[str] = None) -> list[types.JobStatusRecord]:
        """List the status records of the jobs, in all namespaces when namespace is unset."""
        return self.store.list_jobs(namespace)

    def wait_for_job_status(
        self,
        job_id: str,
        namespace: Optional[str] = None,
        status: set[types.JobPhase] = {types.JobPhase.SUCCEEDED},
        timeout: int = 600,
        polling_interval: int = 2,
    ) -> types.JobStatusRecord:
        """Wait for a job to reach a desired phase. The reconciler must be running.

        Args:
            job_id: The job ID.
            namespace: The job namespace. Defaults to the backend namespace.
            status: Expected phases.
            timeout: Maximum number of seconds to wait for the job to reach one of the
                expected phases.
            polling_interval: The polling interval in seconds to check the job status.

        Returns:
            The status record that reaches the desired phase.

        Raises:
            ValueError: The input values are incorrect.
            JobNotFoundError: No record exists for the job.
            RuntimeError: The job reaches an unexpected terminal phase.
            TimeoutError: Timeout to wait for the job status.
        """
        if polling_interval > timeout:
            raise ValueError(
                f"Polling interval {polling_interval} must be less than timeout: {timeout}"
            )

        for _ in range(round(timeout / polling_interval)):
            record = self.get_job_status(job_id, namespace)
            logger.debug(f"Job {record.namespace}/{job_id}, status {record.phase.value}")

            if record.phase in status:
                return record

            # Terminal phases never change, so waiting longer cannot succeed.
            if record.is_terminal:
                raise RuntimeError(f"Job {job_id} is {record.phase.value}: {record.message}")

            time.sleep(polling_interval)

        raise TimeoutError(f"Timeout waiting for job {job_id} to reach status: {status}")

    def list_clusters(self) -> list[types.MemberCluster]:
        """List the member clusters of the federation.

        Raises:
            TimeoutError: Timeout to list the clusters.
            RuntimeError: Failed to list the clusters.
        """
        return self.backend.list_clusters()

    def get_cluster_resources(
        self, cluster: str, namespace: Optional[str] = None, resource: str = "pods"
    ) -> dict[str, Any]:
        """List core API resources of a member cluster namespace through the control plane.

        Args:
            cluster: The member cluster name.
            namespace: The namespace. Defaults to the backend namespace.
            resource: The plural resource name, e.g. `pods` or `services`.

        Raises:
            TimeoutError: Timeout to list the resources.
            RuntimeError: Failed to list the resources.
        """
        return self.backend.get_cluster_resources(cluster, namespace, resource)

    def start_reconciler(self):
        """Start polling the member clusters for the status of non-terminal jobs."""
        self.reconciler.start()

    def stop_reconciler(self):
        self.reconciler.stop()

    def __get_store(self, store: Union[StatusStore, str]) -> StatusStore:
        if isinstance(store, StatusStore):
            return store
        if store == "memory":
            return InMemoryStatusStore()
        if store == "cluster":
            return ClusterStatusStore(self.backend.custom_api)
        return DatabaseStatusStore(url=store)
