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

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class KubernetesBackendConfig(BaseModel):
    """Connection settings for a Kubernetes API server.

    Args:
        namespace: Namespace used when a call does not name one. Resolved from the
            kube-config context or the Pod service account when unset.
        config_file: Path to a kube-config file.
        context: Name of the kube-config context to use.
        client_configuration: A prepared `kubernetes.client.Configuration`. When set,
            kube-config and in-cluster config are not loaded.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    namespace: Optional[str] = None
    config_file: Optional[str] = None
    context: Optional[str] = None
    client_configuration: Optional[Any] = None
