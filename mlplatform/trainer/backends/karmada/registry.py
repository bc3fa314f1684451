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
from typing import Optional

from kubernetes import client

import mlplatform.common.constants as common_constants
import mlplatform.trainer.backends.karmada.utils as utils
from mlplatform.trainer.constants import constants
from mlplatform.trainer.types import types

logger = logging.getLogger(__name__)


class ClusterRegistry:
    """Read-only view of the member clusters registered in the control plane."""

    def __init__(
        self,
        custom_api: client.CustomObjectsApi,
        label_selector: Optional[str] = None,
        timeout: int = common_constants.DEFAULT_TIMEOUT,
    ):
        self.custom_api = custom_api
        self.label_selector = label_selector
        self.timeout = timeout

    def list_clusters(self) -> list[types.MemberCluster]:
        """List the member clusters with their readiness, region and zone.

        Raises:
            TimeoutError: Timeout to list the clusters.
            RuntimeError: Failed to list the clusters.
        """

        result = []
        try:
            kwargs = {"label_selector": self.label_selector} if self.label_selector else {}
            thread = self.custom_api.list_cluster_custom_object(
                constants.CLUSTER_GROUP,
                constants.CLUSTER_VERSION,
                constants.CLUSTER_PLURAL,
                async_req=True,
                **kwargs,
            )
            cluster_list = thread.get(self.timeout)

            for cluster in (cluster_list or {}).get("items") or []:
                result.append(utils.get_member_cluster(cluster))

        except multiprocessing.TimeoutError as e:
            raise TimeoutError(f"Timeout to list {constants.CLUSTER_KIND}s") from e
        except Exception as e:
            raise RuntimeError(f"Failed to list {constants.CLUSTER_KIND}s") from e

        return result

    def ready_cluster_names(self) -> list[str]:
        """Get the names of the ready member clusters, in listing order."""
        clusters = self.list_clusters()
        not_ready = [c.name for c in clusters if not c.ready]
        if not_ready:
            logger.debug(f"Skipping member clusters that are not ready: {not_ready}")
        return [c.name for c in clusters if c.ready]
