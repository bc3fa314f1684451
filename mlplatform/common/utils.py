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

import os
from typing import Optional

from kubernetes import client, config

from mlplatform.common import constants
from mlplatform.common.types import KubernetesBackendConfig


def is_running_in_k8s() -> bool:
    return os.path.isdir("/var/run/secrets/kubernetes.io/")


def get_default_target_namespace(context: Optional[str] = None) -> str:
    if not is_running_in_k8s():
        try:
            all_contexts, current_context = config.list_kube_config_contexts()
            # If context is set, we should get namespace from it.
            if context:
                for c in all_contexts:
                    if isinstance(c, dict) and c.get("name") == context:
                        return c["context"]["namespace"]
            # Otherwise, try to get namespace from the current context.
            return current_context["context"]["namespace"]
        except Exception:
            return constants.DEFAULT_NAMESPACE
    with open(constants.SERVICE_ACCOUNT_NAMESPACE_PATH) as f:
        return f.readline().strip()


def get_api_client(cfg: KubernetesBackendConfig) -> client.ApiClient:
    """Build an ApiClient for the given config, resolving its namespace in place."""
    if cfg.namespace is None:
        cfg.namespace = get_default_target_namespace(cfg.context)

    # If client configuration is not set, use kube-config to access Kubernetes APIs.
    if cfg.client_configuration is None:
        # Load kube-config or in-cluster config.
        if cfg.config_file or not is_running_in_k8s():
            config.load_kube_config(config_file=cfg.config_file, context=cfg.context)
        else:
            config.load_incluster_config()

    return client.ApiClient(cfg.client_configuration)
