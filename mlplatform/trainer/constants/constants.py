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

# The value of the managed-by label set on every resource this engine creates.
MANAGED_BY = "ml-platform-training"

# The label key to identify resources created by this engine.
MANAGED_BY_LABEL = "app.kubernetes.io/managed-by"

# The label and annotation key that carries the job ID.
JOB_ID_LABEL = "training-job-id"

# The label key that carries the algorithm name.
ALGORITHM_LABEL = "algorithm"

# The label key that carries the job name.
APP_LABEL = "app"

# KubeRay RayJob API.
RAY_GROUP = "ray.io"
RAY_VERSION = "v1"
RAY_API_VERSION = f"{RAY_GROUP}/{RAY_VERSION}"
RAYJOB_KIND = "RayJob"
RAYJOB_PLURAL = "rayjobs"

# Karmada PropagationPolicy API.
POLICY_GROUP = "policy.karmada.io"
POLICY_VERSION = "v1alpha1"
POLICY_API_VERSION = f"{POLICY_GROUP}/{POLICY_VERSION}"
PROPAGATION_POLICY_KIND = "PropagationPolicy"
PROPAGATION_POLICY_PLURAL = "propagationpolicies"

# The suffix of the PropagationPolicy name, e.g. <job>-propagation.
PROPAGATION_POLICY_SUFFIX = "-propagation"

# The only replica scheduling type this engine uses. Replicas are split across
# all matched member clusters.
REPLICA_SCHEDULING_DIVIDED = "Divided"

# Karmada Cluster API.
CLUSTER_GROUP = "cluster.karmada.io"
CLUSTER_VERSION = "v1alpha1"
CLUSTER_KIND = "Cluster"
CLUSTER_PLURAL = "clusters"

# The condition type and status that mark a member cluster ready.
CLUSTER_READY_CONDITION = "Ready"

# The cluster labels surfaced in MemberCluster.
CLUSTER_REGION_LABEL = "region"
CLUSTER_ZONE_LABEL = "zone"

# The aggregation proxy path into a member cluster's API.
CLUSTER_PROXY_PATH = f"/apis/{CLUSTER_GROUP}/{CLUSTER_VERSION}/clusters/{{cluster}}/proxy"

# The proxied path of a RayJob in a member cluster.
RAYJOB_PROXY_PATH = (
    CLUSTER_PROXY_PATH
    + f"/apis/{RAY_GROUP}/{RAY_VERSION}/namespaces/{{namespace}}/{RAYJOB_PLURAL}/{{name}}"
)

# The proxied path of core resources (e.g. pods) in a member cluster namespace.
CORE_RESOURCE_PROXY_PATH = CLUSTER_PROXY_PATH + "/api/v1/namespaces/{namespace}/{resource}"

# How long to wait in seconds for a single proxied status query.
DEFAULT_QUERY_TIMEOUT = int(os.getenv("STATUS_QUERY_TIMEOUT", "5"))

# How often in seconds the reconciler scans non-terminal jobs.
DEFAULT_RECONCILE_INTERVAL = float(os.getenv("RECONCILE_INTERVAL", "1"))

# The number of jobs queried concurrently within one reconciler tick.
DEFAULT_RECONCILE_WORKERS = int(os.getenv("RECONCILE_WORKERS", "4"))

# The builtin algorithms that run on the default training images.
XGBOOST = "xgboost"
BUILTIN_ALGORITHMS = (XGBOOST,)

# The algorithm source that brings its own container image.
ALGORITHM_SOURCE_BUILTIN = "builtin"
ALGORITHM_SOURCE_CONTAINER = "container"

# The algorithm label value for container-image algorithms.
CUSTOM_ALGORITHM = "custom"

# The input channel source types.
CHANNEL_SOURCE_OBJECT_STORAGE = "object-storage"
CHANNEL_SOURCE_UPLOAD = "upload"

# The default Ray version and images.
DEFAULT_RAY_VERSION = os.getenv("DEFAULT_RAY_VERSION", "2.46.0")
DEFAULT_HEAD_IMAGE = os.getenv("DEFAULT_HEAD_IMAGE", "rayproject/ray-ml:2.46.0")
DEFAULT_WORKER_IMAGE = os.getenv("DEFAULT_WORKER_IMAGE", DEFAULT_HEAD_IMAGE)

# The default entrypoint of the builtin training image.
DEFAULT_ENTRYPOINT = os.getenv("DEFAULT_ENTRYPOINT", "python /home/ray/xgboost_train.py")

# The head and worker container names.
RAY_HEAD_CONTAINER = "ray-head"
RAY_WORKER_CONTAINER = "ray-worker"

# The worker group name.
WORKER_GROUP_NAME = "workers"

# The head container ports.
RAY_HEAD_PORTS = (
    (6379, "gcs-server"),
    (8265, "dashboard"),
    (10001, "client"),
)

# The worker group autoscaling bounds: maxReplicas = max(MIN_MAX_REPLICAS, factor * replicas).
WORKER_MAX_REPLICAS_FACTOR = 5
WORKER_MIN_MAX_REPLICAS = 5

# Annotations set on head and worker Pod templates.
POD_TEMPLATE_ANNOTATIONS = {"sidecar.istio.io/inject": "false"}

# The resource labels in the container resources.
CPU_LABEL = "cpu"
MEMORY_LABEL = "memory"
GPU_LABEL = "nvidia.com/gpu"

# The result storage volume.
RESULT_STORAGE_VOLUME = "result-storage"
DEFAULT_STORAGE_PATH = "/home/ray/result-storage"
DEFAULT_PVC_NAME = os.getenv("DEFAULT_PVC_NAME", "ray-result-storage")
PVC_SUFFIX = "-pvc"
PVC_ACCESS_MODE = "ReadWriteMany"

# The URI scheme of output locations that resolve to a local path.
LOCAL_PATH_SCHEME = "file://"

# The default label column of the training data.
DEFAULT_LABEL_COLUMN = "target"

# The object storage settings handed to the training containers.
DEFAULT_S3_ENDPOINT = os.getenv("DEFAULT_S3_ENDPOINT", "minio.minio.svc.cluster.local:9000")
DEFAULT_S3_REGION = os.getenv("DEFAULT_S3_REGION", "us-east-1")
DEFAULT_S3_ACCESS_KEY = os.getenv("DEFAULT_S3_ACCESS_KEY", "")
DEFAULT_S3_SECRET_KEY = os.getenv("DEFAULT_S3_SECRET_KEY", "")

# The env name that carries the runtime configuration payload.
RUNTIME_CONFIG_ENV = "TUNING_CONFIG"

# The runtime configuration payload schema version. Bump on any breaking change.
RUNTIME_CONFIG_VERSION = 1

# The max length of a DNS label.
DNS_LABEL_MAX_LENGTH = 63

# The pattern of a DNS label (RFC 1123).
DNS_LABEL_PATTERN = r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$"

# RayJob native job statuses.
RAYJOB_STATUS_SUCCEEDED = "SUCCEEDED"
RAYJOB_STATUS_FAILED = "FAILED"
RAYJOB_STATUS_RUNNING = "RUNNING"
RAYJOB_STATUS_PENDING = "PENDING"

# RayJob deployment status that means the Ray cluster is up.
RAYJOB_DEPLOYMENT_RUNNING = "Running"

# Annotations used by the cluster-backed status store.
STATUS_ANNOTATION_PREFIX = "training.mlplatform.io/"
PHASE_ANNOTATION = STATUS_ANNOTATION_PREFIX + "phase"
MESSAGE_ANNOTATION = STATUS_ANNOTATION_PREFIX + "message"
START_TIME_ANNOTATION = STATUS_ANNOTATION_PREFIX + "start-time"
COMPLETION_TIME_ANNOTATION = STATUS_ANNOTATION_PREFIX + "completion-time"
CLUSTER_REPLICAS_ANNOTATION = STATUS_ANNOTATION_PREFIX + "cluster-replicas"
TARGET_CLUSTERS_ANNOTATION = STATUS_ANNOTATION_PREFIX + "target-clusters"

# The job status store used by TrainerClient: `memory`, `cluster` or a database URL.
DEFAULT_STATUS_STORE = os.getenv("STATUS_STORE", "memory")
