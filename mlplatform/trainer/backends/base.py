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

import abc
from typing import Any, Optional

from mlplatform.trainer.types import types
from mlplatform.trainer.types.resources import PlacementDocument, RayJobResource, StorageClaim


class TrainingBackend(abc.ABC):
    """Base class for the backends that run training jobs on member clusters."""

    @abc.abstractmethod
    def submit(
        self,
        resource: RayJobResource,
        claim: Optional[StorageClaim],
        placement: PlacementDocument,
    ):
        raise NotImplementedError()

    @abc.abstractmethod
    def delete(self, job_id: str, namespace: Optional[str] = None):
        raise NotImplementedError()

    @abc.abstractmethod
    def get_job_observation(
        self,
        job_id: str,
        namespace: Optional[str] = None,
        timeout: Optional[int] = None,
    ) -> Optional[types.RayJobObservation]:
        raise NotImplementedError()

    @abc.abstractmethod
    def list_clusters(self) -> list[types.MemberCluster]:
        raise NotImplementedError()

    @abc.abstractmethod
    def get_cluster_resources(
        self, cluster: str, namespace: Optional[str] = None, resource: str = "pods"
    ) -> dict[str, Any]:
        raise NotImplementedError()
