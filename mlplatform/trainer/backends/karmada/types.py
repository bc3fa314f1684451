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

from typing import Optional

from mlplatform.common.types import KubernetesBackendConfig
from mlplatform.trainer.constants import constants


class KarmadaBackendConfig(KubernetesBackendConfig):
    """Access to the federation control plane.

    The kube-config or client configuration must point at the Karmada API server, not at
    a member cluster.

    Args:
        query_timeout: How long to wait in seconds for a proxied member cluster query.
        cluster_selector: The label selector applied when listing member clusters.
    """

    query_timeout: int = constants.DEFAULT_QUERY_TIMEOUT
    cluster_selector: Optional[str] = None
