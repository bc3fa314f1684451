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

import logging
import multiprocessing
from typing import Any, Optional

from kubernetes import client

import mlplatform.common.constants as common_constants
import mlplatform.common.utils as common_utils
from mlplatform.trainer.backends.base import TrainingBackend
from mlplatform.trainer.backends.karmada import placement as placement_planner
from mlplatform.trainer.backends.karmada.registry import ClusterRegistry
from mlplatform.trainer.backends.karmada.types import KarmadaBackendConfig
import mlplatform.trainer.backends.karmada.utils as utils
from mlplatform.trainer.constants import constants
from mlplatform.trainer.errors import SubmissionError, TransientQueryError
from mlplatform.trainer.types import types
from mlplatform.trainer.types.resources import PlacementDocument, RayJobResource, StorageClaim

logger = logging.getLogger(__name__)


class KarmadaBackend(TrainingBackend):
    """Runs RayJobs on the member clusters of a Karmada federation.

    Every write goes to the control plane. Reads of the RayJob status go through the
    cluster aggregation proxy of the member cluster that runs it.
    """

    def __init__(self, cfg: KarmadaBackendConfig):
        self.api_client = common_utils.get_api_client(cfg)
        self.custom_api = client.CustomObjectsApi(self.api_client)
        self.core_api = client.CoreV1Api(self.api_client)

        self.namespace = cfg.namespace
        self.query_timeout = cfg.query_timeout
        self.registry = ClusterRegistry(self.custom_api, cfg.cluster_selector)

    def submit(
        self,
        resource: RayJobResource,
        claim: Optional[StorageClaim],
        placement: PlacementDocument,
    ):
        """Create the storage claim, the RayJob and its placement, in that order.

        Objects that already exist are left as they are, so a retried submission
        converges to the same state.

        Raises:
            SubmissionError: The RayJob or the placement could not be created. A failed
                storage claim is only logged.
        """

        if claim is not None:
            self.__create_storage_claim(claim)

        self.__create_custom_object(
            constants.RAY_GROUP,
            constants.RAY_VERSION,
            constants.RAYJOB_PLURAL,
            constants.RAYJOB_KIND,
            resource.namespace,
            resource.name,
            resource.to_dict(),
        )

        self.__create_custom_object(
            constants.POLICY_GROUP,
            constants.POLICY_VERSION,
            constants.PROPAGATION_POLICY_PLURAL,
            constants.PROPAGATION_POLICY_KIND,
            placement.namespace,
            placement.name,
            placement.to_dict(),
        )

    def delete(self, job_id: str, namespace: Optional[str] = None):
        """Delete the placement and then the RayJob. Never raises.

        The storage claim is kept so the next job with the same ID can reuse it.
        """

        namespace = namespace or self.namespace

        self.__delete_custom_object(
            constants.POLICY_GROUP,
            constants.POLICY_VERSION,
            constants.PROPAGATION_POLICY_PLURAL,
            constants.PROPAGATION_POLICY_KIND,
            namespace,
            placement_planner.get_placement_name(job_id),
        )

        self.__delete_custom_object(
            constants.RAY_GROUP,
            constants.RAY_VERSION,
            constants.RAYJOB_PLURAL,
            constants.RAYJOB_KIND,
            namespace,
            job_id,
        )

    def get_placement_clusters(
        self, job_id: str, namespace: Optional[str] = None, timeout: Optional[int] = None
    ) -> Optional[list[str]]:
        """Get the target clusters of a job's placement.

        Returns:
            The cluster names, an empty list for an unconstrained placement, or None when
            the placement does not exist.

        Raises:
            TransientQueryError: The placement could not be read.
        """

        namespace = namespace or self.namespace
        name = placement_planner.get_placement_name(job_id)
        try:
            thread = self.custom_api.get_namespaced_custom_object(
                constants.POLICY_GROUP,
                constants.POLICY_VERSION,
                namespace,
                constants.PROPAGATION_POLICY_PLURAL,
                name,
                async_req=True,
            )
            policy = thread.get(timeout or self.query_timeout)
        except multiprocessing.TimeoutError as e:
            raise TransientQueryError(
                f"Timeout to get {constants.PROPAGATION_POLICY_KIND}: {namespace}/{name}"
            ) from e
        except Exception as e:
            if utils.is_not_found(e):
                return None
            raise TransientQueryError(
                f"Failed to get {constants.PROPAGATION_POLICY_KIND}: {namespace}/{name}"
            ) from e

        return placement_planner.get_cluster_names(policy)

    def get_job_observation(
        self,
        job_id: str,
        namespace: Optional[str] = None,
        timeout: Optional[int] = None,
    ) -> Optional[types.RayJobObservation]:
        """Read the native RayJob status from the first candidate member cluster.

        Candidates come from the job placement. An unconstrained placement makes every
        ready member cluster a candidate.

        Returns:
            The observation, or None when the status is unknown: the placement or the
            RayJob does not exist, or no member cluster is a candidate.

        Raises:
            TransientQueryError: A query failed or timed out.
        """

        namespace = namespace or self.namespace
        timeout = timeout or self.query_timeout

        candidates = self.get_placement_clusters(job_id, namespace, timeout)
        if candidates is None:
            logger.debug(
                f"{constants.PROPAGATION_POLICY_KIND} of job {namespace}/{job_id} not found"
            )
            return None

        if not candidates:
            try:
                candidates = self.registry.ready_cluster_names()
            except (TimeoutError, RuntimeError) as e:
                raise TransientQueryError(f"Failed to list ready member clusters: {e}") from e

        if not candidates:
            logger.debug(f"No member cluster is a candidate for job {namespace}/{job_id}")
            return None

        cluster = candidates[0]
        path = utils.get_rayjob_proxy_path(cluster, namespace, job_id)
        try:
            rayjob = self.__proxy_get(path, timeout)
        except multiprocessing.TimeoutError as e:
            raise TransientQueryError(
                f"Timeout to get {constants.RAYJOB_KIND} {namespace}/{job_id} "
                f"from cluster {cluster}"
            ) from e
        except Exception as e:
            if utils.is_not_found(e):
                logger.debug(
                    f"{constants.RAYJOB_KIND} {namespace}/{job_id} not found in cluster {cluster}"
                )
                return None
            raise TransientQueryError(
                f"Failed to get {constants.RAYJOB_KIND} {namespace}/{job_id} from cluster "
                f"{cluster}: {utils.get_error_reason(e)}"
            ) from e

        return utils.get_ray_job_observation(cluster, rayjob or {})

    def list_clusters(self) -> list[types.MemberCluster]:
        return self.registry.list_clusters()

    def get_cluster_resources(
        self, cluster: str, namespace: Optional[str] = None, resource: str = "pods"
    ) -> dict[str, Any]:
        """List core API resources, e.g. pods, of a member cluster namespace.

        Raises:
            TimeoutError: Timeout to list the resources.
            RuntimeError: Failed to list the resources.
        """

        namespace = namespace or self.namespace
        path = utils.get_core_resource_proxy_path(cluster, namespace, resource)
        try:
            return self.__proxy_get(path, common_constants.DEFAULT_TIMEOUT) or {}
        except multiprocessing.TimeoutError as e:
            raise TimeoutError(
                f"Timeout to list {resource} in cluster {cluster}: {namespace}"
            ) from e
        except Exception as e:
            raise RuntimeError(
                f"Failed to list {resource} in cluster {cluster}: {namespace}"
            ) from e

    def __proxy_get(self, path: str, timeout: int) -> Any:
        thread = self.api_client.call_api(
            path,
            "GET",
            header_params={"Accept": "application/json"},
            response_type="object",
            auth_settings=["BearerToken"],
            async_req=True,
            _return_http_data_only=True,
            _request_timeout=timeout,
        )
        return thread.get(timeout)

    def __create_storage_claim(self, claim: StorageClaim):
        try:
            self.core_api.create_namespaced_persistent_volume_claim(
                claim.namespace,
                claim.to_dict(),
                async_req=True,
            ).get(common_constants.DEFAULT_TIMEOUT)
            logger.debug(f"PersistentVolumeClaim {claim.namespace}/{claim.name} has been created")
        except multiprocessing.TimeoutError:
            logger.warning(
                f"Timeout to create PersistentVolumeClaim {claim.namespace}/{claim.name}"
            )
        except Exception as e:
            if utils.is_conflict(e):
                logger.debug(f"PersistentVolumeClaim {claim.namespace}/{claim.name} already exists")
                return
            logger.warning(
                f"Failed to create PersistentVolumeClaim {claim.namespace}/{claim.name}: "
                f"{utils.get_error_reason(e)}"
            )

    def __create_custom_object(
        self,
        group: str,
        version: str,
        plural: str,
        kind: str,
        namespace: str,
        name: str,
        body: dict[str, Any],
    ):
        try:
            self.custom_api.create_namespaced_custom_object(
                group,
                version,
                namespace,
                plural,
                body,
                async_req=True,
            ).get(common_constants.DEFAULT_TIMEOUT)
        except multiprocessing.TimeoutError as e:
            raise SubmissionError(f"Timeout to create {kind}: {namespace}/{name}") from e
        except Exception as e:
            if utils.is_conflict(e):
                logger.debug(f"{kind} {namespace}/{name} already exists")
                return
            raise SubmissionError(
                f"Failed to create {kind}: {namespace}/{name}: {utils.get_error_reason(e)}"
            ) from e

        logger.debug(f"{kind} {namespace}/{name} has been created")

    def __delete_custom_object(
        self,
        group: str,
        version: str,
        plural: str,
        kind: str,
        namespace: str,
        name: str,
    ):
        try:
            self.custom_api.delete_namespaced_custom_object(
                group,
                version,
                namespace,
                plural,
                name=name,
                async_req=True,
            ).get(common_constants.DEFAULT_TIMEOUT)
        except multiprocessing.TimeoutError:
            logger.warning(f"Timeout to delete {kind}: {namespace}/{name}")
            return
        except Exception as e:
            if utils.is_not_found(e):
                logger.debug(f"{kind} {namespace}/{name} was already deleted")
            else:
                logger.warning(
                    f"Failed to delete {kind}: {namespace}/{name}: {utils.get_error_reason(e)}"
                )
            return

        logger.debug(f"{kind} {namespace}/{name} has been deleted")
